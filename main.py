"""Hero Campaign dev server.

    python main.py                      serve ./data (or $DATA_DIR)
    python main.py --data-dir /tmp/hc   serve another data directory
    python main.py --demo               wipe campaigns, seed demo heroes, serve
"""

import argparse
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")


def main():
    parser = argparse.ArgumentParser(description="Hero Campaign dev server")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: $DATA_DIR or ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Clear stored campaigns and create demo heroes before serving")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("BACKEND_PORT", "13013")))
    args = parser.parse_args()

    # the reloader imports backend.app in a fresh process, so pass the dir on
    if args.data_dir:
        os.environ["DATA_DIR"] = str(args.data_dir.resolve())

    if args.demo:
        from backend import storage
        from backend.demo import create_demo_data

        storage.init_storage(Path(os.getenv("DATA_DIR", str(ROOT / "data"))))
        print(f"Created demo heroes: {', '.join(create_demo_data())}")

    uvicorn.run("backend.app:app", host=args.host, port=args.port, reload=True)


if __name__ == "__main__":
    main()
