# noqa: D104 - package initialization
from .logging import configure_structured_logging  # noqa: F401
from .metrics import metrics_blueprint, record_reconcile_failure, record_reconcile_success  # noqa: F401
