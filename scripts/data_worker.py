from __future__ import annotations

from notifyagg.workers.data_worker import run


if __name__ == "__main__":
    run()
