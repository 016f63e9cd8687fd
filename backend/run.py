#!/usr/bin/env python3
# backend/run.py
"""Development server runner (auto-reload, in-process room fan-out by default)."""

import os

import uvicorn

if __name__ == "__main__":
    os.environ.setdefault("BROADCAST_URL", "memory://")
    uvicorn.run(
        "admitlink.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        log_level="info",
    )
