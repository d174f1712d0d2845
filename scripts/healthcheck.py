#!/usr/bin/env python
"""Container healthcheck probing the Flask /healthz endpoint."""

import os
import sys

import requests


def main() -> int:
    host = os.getenv("HEALTHCHECK_HOST", "127.0.0.1")
    port = os.getenv("PORT", os.getenv("APP_PORT", "5000"))
    target = f"http://{host}:{port}/healthz"
    try:
        resp = requests.get(target, timeout=5)
    except requests.exceptions.RequestException:
        return 1
    return 0 if resp.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
