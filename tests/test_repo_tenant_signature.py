"""Lint-like test: every public repo function takes tenant_id as its first parameter."""

import inspect

from apps.control_plane.services import repo

# Agents may report before identifying a tenant; operators may ask fleet-wide.
TENANT_OPTIONAL = {"insert_sync_attempt", "list_recent_sync_attempts", "count_sync_attempts_by_status"}


def _public_repo_functions():
    for name, obj in inspect.getmembers(repo, inspect.isfunction):
        if name.startswith("_") or getattr(obj, "__module__", "") != repo.__name__:
            continue
        yield name, obj


def test_repo_public_functions_start_with_tenant_id() -> None:
    for name, obj in _public_repo_functions():
        params = list(inspect.signature(obj).parameters)
        assert params and params[0] == "tenant_id", f"repo.{name} first param must be 'tenant_id', got {params[:1]!r}"


def test_tenant_optional_functions_are_explicit() -> None:
    """Only the listed functions may default tenant_id or accept None without raising."""
    for name, obj in _public_repo_functions():
        default = inspect.signature(obj).parameters["tenant_id"].default
        if default is not inspect.Parameter.empty:
            assert name in TENANT_OPTIONAL, f"repo.{name} must not default tenant_id"


def test_exports_match_definitions() -> None:
    defined = {name for name, _ in _public_repo_functions()}
    assert defined == set(repo.__all__) - {"TenantRequiredError"}
