from __future__ import annotations

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "skillgap.web.main:app",
        host=os.environ.get("APP_HOST", "0.0.0.0"),
        port=int(os.environ.get("APP_PORT", "8000")),
        reload=os.environ.get("ENVIRONMENT", "development") == "development",
    )


if __name__ == "__main__":
    main()
