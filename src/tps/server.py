"""HTTP server for the token throughput analyzer."""

import argparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import DEFAULT_HOST, DEFAULT_PORT
from .logging_config import setup_logging, set_log_level
from .routes import analysis_router, cache_router

setup_logging()

app = FastAPI(title="Token Throughput Analyzer")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(analysis_router)
app.include_router(cache_router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.put("/api/log-level")
def update_log_level(level: str):
    """Change the log level at runtime."""
    set_log_level(level)
    return {"level": level.upper()}


def main():
    import uvicorn

    parser = argparse.ArgumentParser(description="Token Throughput Analyzer server")
    parser.add_argument('--host', default=DEFAULT_HOST, help='Host to bind to')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT, help='Port to bind to')
    args = parser.parse_args()

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
