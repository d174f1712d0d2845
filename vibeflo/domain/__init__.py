"""Domain services: playlist reconciliation and the song catalogue."""
