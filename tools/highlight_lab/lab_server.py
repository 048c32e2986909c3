from __future__ import annotations

from http.server import ThreadingHTTPServer

from lab_config import DATASET_DIR, HOST, PORT, REPO_ROOT
from lab_handler import LabHandler


def main() -> None:
    DATASET_DIR.mkdir(parents=True, exist_ok=True)

    print("Ingredient Highlight Lab")
    print(f"Repo root: {REPO_ROOT}")
    print(f"Datasets: {DATASET_DIR}")
    print(f"Open: http://{HOST}:{PORT}")

    server = ThreadingHTTPServer((HOST, PORT), LabHandler)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
