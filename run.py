#!/usr/bin/env python
"""
Run script for the Circle application.

Optionally creates the database tables, then starts uvicorn.
"""

import argparse
import asyncio
import logging

import uvicorn

from circle.utils.create_tables import create_database_tables


def main(host: str = "127.0.0.1", port: int = 8000, reload: bool = True,
         workers: int = 1, create_tables: bool = False) -> None:
    """
    Main entry point for the application.

    Args:
        host: Host to bind the server to.
        port: Port to bind the server to.
        reload: Whether to reload the server on code changes.
        workers: Number of worker processes.
        create_tables: Whether to create database tables before starting.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if create_tables:
        asyncio.run(create_database_tables())
        logging.info("Database tables created")

    logging.info("Starting FastAPI application on %s:%s", host, port)
    uvicorn.run(
        "circle.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=workers,
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the Circle application")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind the server to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind the server to")
    parser.add_argument("--no-reload", action="store_false", dest="reload", help="Disable auto-reload")
    parser.add_argument("--workers", type=int, default=1, help="Number of worker processes")
    parser.add_argument("--create-tables", action="store_true", help="Create database tables")

    args = parser.parse_args()
    main(
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers,
        create_tables=args.create_tables,
    )
