"""Shared fixtures for integration tests.

Provides:
- postgres_container: Session-scoped PostgreSQL container
- writer_target: TargetSettings pointing at the container

Every test here is skipped when Docker or testcontainers is unavailable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, cast

import pytest
from pydantic import SecretStr

from rwsplit.pool import TargetSettings

if TYPE_CHECKING:
    from collections.abc import Iterator


class PostgresContainerProtocol(Protocol):
    """Protocol for PostgreSQL container interface."""

    def get_exposed_port(self, port: int) -> int: ...
    def get_container_host_ip(self) -> str: ...
    def start(self) -> PostgresContainerProtocol: ...
    def stop(self) -> None: ...


def _configure_docker_environment() -> None:
    """Point DOCKER_HOST at the macOS Docker Desktop socket when it exists."""
    import os
    from pathlib import Path

    if os.environ.get("DOCKER_HOST"):
        return

    macos_socket = Path.home() / ".docker" / "run" / "docker.sock"
    if macos_socket.exists():
        os.environ["DOCKER_HOST"] = f"unix://{macos_socket}"


def _check_docker_available() -> bool:
    try:
        from docker import from_env  # type: ignore[import-untyped]
        from docker.errors import DockerException  # type: ignore[import-untyped]
    except ImportError:
        return False

    try:
        from_env().ping()
    except DockerException:
        return False
    return True


def _create_postgres_container() -> PostgresContainerProtocol:
    from testcontainers.postgres import PostgresContainer  # type: ignore[import-untyped]

    container = PostgresContainer(
        "postgres:16-alpine",
        username="test_user",
        password="test_password",
        dbname="test_db",
    )
    return cast(PostgresContainerProtocol, container)


@pytest.fixture(scope="session")
def postgres_container() -> Iterator[PostgresContainerProtocol]:
    """Provide a session-scoped PostgreSQL container.

    Skips:
        If Docker daemon or testcontainers is not available.
    """
    _configure_docker_environment()

    if not _check_docker_available():
        pytest.skip(
            "Docker daemon not available. "
            "Install Docker Desktop (macOS) or Docker Engine (Linux) to run integration tests."
        )

    try:
        container = _create_postgres_container()
    except ImportError as e:
        pytest.skip(f"testcontainers not installed: {e}")

    container.start()

    try:
        yield container
    finally:
        container.stop()


@pytest.fixture
def writer_target(postgres_container: PostgresContainerProtocol) -> TargetSettings:
    return TargetSettings(
        host=postgres_container.get_container_host_ip(),
        port=postgres_container.get_exposed_port(5432),
        database="test_db",
        user="test_user",
        password=SecretStr("test_password"),
    )
