"""Pytest fixtures for test suite."""

from pathlib import Path
from typing import Any

import pytest

from rulebook.context import Context
from rulebook.packages import BasePackage, PackageManager
from rulebook.packages.http import HttpPackage
from rulebook.rules import (
    ActionRegistry,
    ConditionRegistry,
    RuleEngine,
    default_action_registry,
    default_condition_registry,
)


# =============================================================================
# Core Fixtures
# =============================================================================


@pytest.fixture
def conditions() -> ConditionRegistry:
    """Fresh condition registry with the built-in types."""
    return default_condition_registry()


@pytest.fixture
def actions() -> ActionRegistry:
    """Fresh action registry with the built-in types."""
    return default_action_registry()


@pytest.fixture
def engine(conditions: ConditionRegistry, actions: ActionRegistry) -> RuleEngine:
    """Engine without a package manager."""
    return RuleEngine(conditions, actions)


@pytest.fixture
def context() -> Context:
    return Context()


@pytest.fixture
def calls() -> list[Any]:
    """Records invocations made by callback conditions and actions."""
    return []


# =============================================================================
# Package Fixtures
# =============================================================================


def make_package(
    name: str,
    requires: tuple[str, ...] = (),
    namespaces: tuple[str, ...] = (),
    available: bool = True,
    context: dict[str, Any] | None = None,
) -> BasePackage:
    """Build a throwaway package class and instantiate it."""
    attrs = {
        "name": name,
        "required_packages": requires,
        "namespaces": namespaces,
        "is_available": lambda self: available,
        "build_context": lambda self: dict(context or {}),
    }
    return type(f"{name}Package", (BasePackage,), attrs)()


@pytest.fixture
def package_factory():
    return make_package


@pytest.fixture
def package_manager(conditions: ConditionRegistry, actions: ActionRegistry) -> PackageManager:
    return PackageManager(conditions, actions)


@pytest.fixture
def sample_environ() -> dict[str, str]:
    """WSGI environ for GET /blog/post?page=2 with a session cookie."""
    return {
        "REQUEST_METHOD": "get",
        "PATH_INFO": "/blog/post",
        "QUERY_STRING": "page=2&ref=home",
        "HTTP_HOST": "example.com",
        "HTTP_USER_AGENT": "Mozilla/5.0 (X11; Linux x86_64)",
        "HTTP_REFERER": "https://example.com/",
        "HTTP_ACCEPT_LANGUAGE": "en-US",
        "HTTP_X_FORWARDED_FOR": "203.0.113.7, 10.0.0.1",
        "HTTP_COOKIE": "session=abc123; consent=",
        "REMOTE_ADDR": "10.0.0.1",
        "wsgi.url_scheme": "https",
    }


@pytest.fixture
def http_manager(
    package_manager: PackageManager, sample_environ: dict[str, str]
) -> PackageManager:
    """Package manager with the HTTP package registered and loaded."""
    package_manager.register(HttpPackage(sample_environ, constants={"WP_DEBUG": True}))
    package_manager.load(["http"])
    return package_manager


@pytest.fixture
def rules_dir(tmp_path: Path) -> Path:
    """Directory holding a couple of YAML rule files."""
    (tmp_path / "cache.yaml").write_text(
        """
id: disable-cache-for-sessions
title: Disable cache for logged-in sessions
order: 5
conditions:
  - type: cookie
    name: session
actions:
  - type: set_cache
    enabled: false
    locked: true
metadata:
  required_packages: [http]
""",
        encoding="utf-8",
    )
    (tmp_path / "flags.yml").write_text(
        """
- id: flag-admin
  match_type: any
  conditions:
    - type: request_url
      value: /admin*
      operator: LIKE
  actions:
    - type: set_context
      path: flags.admin
      value: true
- id: flag-api
  conditions:
    - type: request_url
      value: /api/*
      operator: LIKE
  actions:
    - type: set_context
      path: flags.api
      value: true
""",
        encoding="utf-8",
    )
    return tmp_path
