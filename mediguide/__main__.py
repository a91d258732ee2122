"""
Runs the API server: `python -m mediguide` or `mediguide-server`.
"""

import os

import uvicorn

from mediguide.api import create_app


def main() -> None:
    uvicorn.run(
        create_app(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
