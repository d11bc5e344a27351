from __future__ import annotations

import argparse
import logging
import os
import sys
import uuid

from fastapi import FastAPI
import uvicorn

from courtlist_publisher.api.http_app import build_app
from courtlist_publisher.clients.stub import (
    StubContentStore,
    StubCourtListAssembler,
    StubHubPublisher,
    StubRendererClient,
)
from courtlist_publisher.logging_setup import configure_logging
from courtlist_publisher.repositories.stub import InMemoryStatusRepository
from courtlist_publisher.roles import SUPPORTED_ROLES, RuntimeRole, validate_role
from courtlist_publisher.services.bootstrap import RuntimeContainer, build_runtime_container

DEFAULT_PORTS = {"api": 8000, "api-query": 8100}

logger = logging.getLogger("runtime")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Court list publisher runtime entrypoint")
    parser.add_argument("--role", required=True, help=f"Runtime role ({', '.join(SUPPORTED_ROLES)})")
    parser.add_argument("--host", default=os.getenv("APP_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=None, help="Defaults to 8000 (api) or 8100 (api-query)")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    parser.add_argument(
        "--dry-run-startup",
        action="store_true",
        help="Build the runtime wiring and exit",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable code reload (dev mode)",
    )
    return parser.parse_args(argv)


def backend_summary(container: RuntimeContainer) -> dict[str, str]:
    """Which collaborators are live and which run on in-process stubs."""

    def _mode(component: object, stub_type: type) -> str:
        return "stub" if isinstance(component, stub_type) else "live"

    return {
        "repository": "memory" if isinstance(container.repository, InMemoryStatusRepository) else "postgres",
        "assembler": _mode(container.assembler, StubCourtListAssembler),
        "renderer": _mode(container.renderer, StubRendererClient),
        "content_store": _mode(container.content_store, StubContentStore),
        "hub": _mode(container.hub, StubHubPublisher),
        "list_types": container.catalogue.catalogue_version,
    }


def _app_for(role: RuntimeRole, run_id: str, container: RuntimeContainer) -> FastAPI:
    return build_app(
        role=role.name,
        run_id=run_id,
        api_deps=container.api_deps,
        on_startup=container.on_startup,
        on_shutdown=container.on_shutdown,
    )


def create_runtime_app() -> FastAPI:
    """uvicorn factory used in reload mode; role comes from APP_ROLE."""
    role = validate_role(os.getenv("APP_ROLE", "api"))
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    return _app_for(role, str(uuid.uuid4()), build_runtime_container(role))


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        role = validate_role(args.role)
    except ValueError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 2

    configure_logging(args.log_level)
    run_id = str(uuid.uuid4())
    log_extra = {"role": role.name, "service": role.name, "run_id": run_id}

    try:
        container = build_runtime_container(role)
    except ValueError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 2

    logger.info(
        "runtime initialized",
        extra={**log_extra, "detail": backend_summary(container)},
    )
    if args.dry_run_startup:
        logger.info("dry-run startup complete", extra=log_extra)
        return 0

    port = args.port if args.port is not None else DEFAULT_PORTS.get(role.name, 8000)
    if args.reload:
        os.environ["APP_ROLE"] = role.name
        os.environ["LOG_LEVEL"] = args.log_level
        uvicorn.run(
            "courtlist_publisher.main:create_runtime_app",
            host=args.host,
            port=port,
            log_level="warning",
            reload=True,
            factory=True,
        )
        return 0

    uvicorn.run(_app_for(role, run_id, container), host=args.host, port=port, log_level="warning")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
