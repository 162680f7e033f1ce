"""Module entrypoint for running the chart poller with shared settings."""

from coinpulse.services.poller.main import main

if __name__ == "__main__":
    raise SystemExit(main())
