"""Tests for data models."""

from tracelink.models import FilterScope, LinkError, LinkRequest, Resource, Result, UnlinkError, UnlinkRequest


def test_resource_creation() -> None:
    """Test resource creation with defaults."""
    resource = Resource(id="b1", title="Login fails")
    assert resource.id == "b1"
    assert resource.title == "Login fails"
    assert resource.linked_ids == []
    assert resource.kind.value == "bug"
    assert resource.metadata == {}


def test_requests_are_hashable() -> None:
    """Test link and unlink requests can be used as set members."""
    requests = {
        LinkRequest("b1", frozenset({"t1"})),
        LinkRequest("b1", frozenset({"t1"})),
        UnlinkRequest("b1", "t1"),
    }
    assert len(requests) == 2


def test_organization_scope_path() -> None:
    """Test organization scopes point at the organization's suite."""
    scope = FilterScope(suite_id="s1", user_id="u1", org_id="acme")
    assert scope.is_complete
    assert scope.collection_path == "organizations/acme/testSuites/s1/bugs"


def test_individual_scope_path() -> None:
    """Test individual accounts do not need an organization."""
    scope = FilterScope(suite_id="s1", user_id="u1", account_type="individual")
    assert scope.is_complete
    assert scope.collection_path == "individualAccounts/u1/testSuites/s1/bugs"


def test_incomplete_scope() -> None:
    """Test scopes missing a suite, user or organization are incomplete."""
    assert not FilterScope(user_id="u1", org_id="acme").is_complete
    assert not FilterScope(suite_id="s1", org_id="acme").is_complete
    assert not FilterScope(suite_id="s1", user_id="u1").is_complete


def test_result_helpers() -> None:
    """Test success and failure results."""
    assert Result.success().ok
    failure = Result.failure(LinkError.INVALID_SOURCE, "Unknown bug: b9")
    assert not failure.ok
    assert failure.error is LinkError.INVALID_SOURCE
    assert Result.failure(UnlinkError.PERSISTENCE_FAILURE).detail is None
