"""End-to-end sync cycles against the in-memory admin API."""

import pytest

from promptsync.client import ArtifactKind, InMemoryArtifactClient
from promptsync.core.exceptions import InvalidDeclarationError, NotFoundError, TransportError
from promptsync.models import (
    ApiKeyLimits,
    ApiKeyUsageLimits,
    DeclaredApiKey,
    DeclaredPartial,
    DeclaredPrompt,
    DeclaredWorkspace,
    WorkspaceLimits,
    WorkspaceUsageLimit,
)
from promptsync.reconcile import VersionVerdict, classify
from promptsync.services import ArtifactSyncService, parse_import_id


class LaggingLatestClient(InMemoryArtifactClient):
    """Reads of the latest version do not see writes yet."""

    def fetch(self, kind, identifier, version=None):
        if version == "latest":
            version = None
        return super().fetch(kind, identifier, version)


@pytest.fixture
def partial(service):
    return service.create_partial(
        DeclaredPartial(name="Greeting", content="Hello {{name}}", workspace_id="ws-1", version_description="v1")
    )


@pytest.fixture
def prompt(service):
    return service.create_prompt(
        DeclaredPrompt(
            name="Support Bot",
            collection_id="col-1",
            content="Be helpful.",
            model="gpt-4o",
            virtual_key="vk-1",
            parameters={"temperature": 0.2},
        )
    )


class TestPartialLifecycle:
    def test_create_populates_computed_fields(self, partial):
        assert partial.slug == "greeting"
        assert partial.version == 1
        assert partial.version_id
        assert partial.status == "active"
        assert partial.workspace_id == "ws-1"
        assert partial.version_description == "v1"

    def test_refresh_without_changes_is_stable(self, service, partial):
        refreshed = service.refresh_partial(partial)
        assert refreshed.content == partial.content
        assert refreshed.version_id == partial.version_id
        assert service.refresh_partial(refreshed) == refreshed

    def test_apply_content_change_publishes_new_version(self, service, memory_client, partial):
        new = partial.model_copy(update={"content": "Hi {{name}}", "version_description": "shorter"})
        applied = service.apply_partial(partial, new)

        assert applied.version == 2
        assert applied.version_id != partial.version_id
        assert applied.content == "Hi {{name}}"
        assert ("PUT", ArtifactKind.PROMPT_PARTIAL, "greeting/makeDefault", {"version": 2}) in memory_client.requests

        # The next refresh agrees with what we recorded.
        refreshed = service.refresh_partial(applied)
        assert refreshed.content == "Hi {{name}}"
        assert refreshed.version == 2

    def test_apply_without_changes_makes_no_request(self, service, memory_client, partial):
        before = len(memory_client.requests)
        assert service.apply_partial(partial, partial) == partial
        assert len(memory_client.requests) == before

    def test_rename_does_not_create_version(self, service, memory_client, partial):
        applied = service.apply_partial(partial, partial.model_copy(update={"name": "Welcome"}))
        assert applied.version == 1
        assert applied.name == "Welcome"
        assert not any(r[2] and r[2].endswith("makeDefault") for r in memory_client.requests)

    def test_console_edit_is_adopted(self, service, memory_client, partial):
        memory_client.edit_externally(ArtifactKind.PROMPT_PARTIAL, "greeting", content="console-edited")
        refreshed = service.refresh_partial(partial)

        assert refreshed.content == "console-edited"
        assert refreshed.version == 2
        assert refreshed.version_description == "v1"

    def test_rollback_is_adopted(self, service, memory_client, partial):
        applied = service.apply_partial(partial, partial.model_copy(update={"content": "second"}))
        memory_client.rollback(ArtifactKind.PROMPT_PARTIAL, "greeting", 1)

        refreshed = service.refresh_partial(applied)
        assert refreshed.content == "Hello {{name}}"
        assert refreshed.version == 1
        assert refreshed.version_id == partial.version_id
        assert refreshed.latest_version == 2

        # Our next apply must become the remote default, not re-default version 2.
        applied = service.apply_partial(refreshed, refreshed.model_copy(update={"content": "after rollback"}))
        remote = service.get_partial("greeting")
        assert remote.content == "after rollback"
        assert classify(applied.version, applied.version_id, remote.version, remote.version_id) is VersionVerdict.UNCHANGED
        again = service.refresh_partial(applied)
        assert again == service.refresh_partial(again)
        assert again.content == "after rollback"
        assert again.version_id == applied.version_id

    def test_apply_after_adopted_rollback_publishes_new_version(self, service, memory_client, partial):
        """Rolled-back number plus one already exists; the new version is 3."""
        second = service.apply_partial(partial, partial.model_copy(update={"content": "second"}))
        memory_client.rollback(ArtifactKind.PROMPT_PARTIAL, "greeting", 1)
        rolled_back = service.refresh_partial(second)

        applied = service.apply_partial(rolled_back, rolled_back.model_copy(update={"content": "third"}))
        assert applied.version == 3
        assert ("PUT", ArtifactKind.PROMPT_PARTIAL, "greeting/makeDefault", {"version": 3}) in memory_client.requests

        remote = service.get_partial("greeting")
        assert remote.content == "third"
        assert classify(applied.version, applied.version_id, remote.version, remote.version_id) is VersionVerdict.UNCHANGED

        refreshed = service.refresh_partial(applied)
        assert refreshed.content == "third"
        assert refreshed.version == 3
        assert refreshed.version_id == applied.version_id

    def test_apply_after_adopted_advance(self, service, memory_client, partial):
        memory_client.edit_externally(ArtifactKind.PROMPT_PARTIAL, "greeting", content="console-edited")
        advanced = service.refresh_partial(partial)

        applied = service.apply_partial(advanced, advanced.model_copy(update={"content": "ours again"}))
        assert applied.version == 3
        refreshed = service.refresh_partial(applied)
        assert refreshed.content == "ours again"
        assert refreshed.version_id == applied.version_id

    def test_lagging_latest_read_falls_back_to_highest_seen(self):
        client = LaggingLatestClient()
        service = ArtifactSyncService(client)
        created = service.create_partial(DeclaredPartial(name="Greeting", content="first"))
        second = service.apply_partial(created, created.model_copy(update={"content": "second"}))
        client.rollback(ArtifactKind.PROMPT_PARTIAL, "greeting", 1)
        rolled_back = service.refresh_partial(second)

        applied = service.apply_partial(rolled_back, rolled_back.model_copy(update={"content": "third"}))
        assert applied.version == 3
        assert service.refresh_partial(applied).content == "third"

    def test_deleted_remotely_refresh_returns_none(self, service, partial):
        assert service.delete_partial(partial) is True
        assert service.refresh_partial(partial) is None
        assert service.delete_partial(partial) is False

    def test_transport_error_propagates(self, service, memory_client, partial):
        memory_client.fail_next = TransportError("boom", status_code=502)
        with pytest.raises(TransportError):
            service.refresh_partial(partial)
        # The held record is untouched and the next cycle works.
        assert service.refresh_partial(partial).content == partial.content

    def test_import_adopts_remote(self, service, partial):
        imported = service.import_partial("ws-9/greeting")
        assert imported.workspace_id == "ws-9"
        assert imported.content == partial.content
        assert imported.version_id == partial.version_id


class TestPromptLifecycle:
    def test_create(self, prompt):
        assert prompt.slug == "support-bot"
        assert prompt.version == 1
        assert prompt.model == "gpt-4o"
        assert prompt.parameters == {"temperature": 0.2}

    def test_parameter_change_versions(self, service, memory_client, prompt):
        new = prompt.model_copy(update={"parameters": {"temperature": 0.9}})
        applied = service.apply_prompt(prompt, new)
        assert applied.version == 2
        assert applied.version_status == "active"

        method, kind, identifier, payload = next(
            r for r in memory_client.requests if r[0] == "PUT" and r[2] == "support-bot"
        )
        assert payload["is_raw_template"] == 0
        assert payload["parameters"] == {"temperature": 0.9}

    def test_console_edit_overwrites_model(self, service, memory_client, prompt):
        memory_client.edit_externally(ArtifactKind.PROMPT, "support-bot", model="gpt-4o-mini")
        refreshed = service.refresh_prompt(prompt)
        assert refreshed.model == "gpt-4o-mini"
        assert refreshed.content == "Be helpful."
        assert refreshed.collection_id == "col-1"

    def test_apply_after_adopted_rollback(self, service, memory_client, prompt):
        second = service.apply_prompt(prompt, prompt.model_copy(update={"model": "gpt-4o-mini"}))
        memory_client.rollback(ArtifactKind.PROMPT, "support-bot", 1)
        rolled_back = service.refresh_prompt(second)
        assert rolled_back.model == "gpt-4o"
        assert rolled_back.version == 1

        new = rolled_back.model_copy(update={"content": "Be brief."})
        applied = service.apply_prompt(rolled_back, new)
        assert applied.version == 3
        assert ("PUT", ArtifactKind.PROMPT, "support-bot/makeDefault", {"version": 3}) in memory_client.requests

        refreshed = service.refresh_prompt(applied)
        assert refreshed.content == "Be brief."
        assert refreshed.model == "gpt-4o"
        assert refreshed.version == 3
        assert refreshed.version_id == applied.version_id

    def test_missing_identifier_rejected(self, service):
        with pytest.raises(InvalidDeclarationError):
            service.refresh_prompt(DeclaredPrompt(name="never created"))


class TestScopedArtifacts:
    def test_workspace_cycle(self, service, memory_client):
        created = service.create_workspace(
            DeclaredWorkspace(
                name="team-a",
                limits=WorkspaceLimits(usage_limits=[WorkspaceUsageLimit(type="cost", credit_limit=10)]),
            )
        )
        assert created.id

        service.update_workspace(
            DeclaredWorkspace(name="team-a", id=created.id, limits=WorkspaceLimits(usage_limits=None))
        )
        assert memory_client.requests[-1][3] == {"name": "team-a", "usage_limits": []}

        assert service.delete_workspace(created) is True
        assert memory_client.requests[-1][3] == {"name": "team-a"}

    def test_api_key_cycle(self, service, memory_client):
        declared = DeclaredApiKey(
            name="ci",
            workspace_id="ws-1",
            limits=ApiKeyLimits(usage_limits=ApiKeyUsageLimits(credit_limit=5)),
        )
        created, secret = service.create_api_key(declared)
        assert created.id
        assert secret.startswith("pk-")
        assert memory_client.requests[-1][2] == "workspace/service"

        service.update_api_key(
            DeclaredApiKey(name="ci", workspace_id="ws-1", id=created.id, limits=ApiKeyLimits(usage_limits=None))
        )
        assert memory_client.requests[-1][3] == {"name": "ci", "usage_limits": None}

    def test_update_requires_id(self, service):
        with pytest.raises(InvalidDeclarationError):
            service.update_workspace(DeclaredWorkspace(name="team-a"))


class TestLookups:
    """Read-only lookups never reconcile or write."""

    def test_get_partial_by_version(self, service, memory_client, partial):
        service.apply_partial(partial, partial.model_copy(update={"content": "second"}))
        memory_client.rollback(ArtifactKind.PROMPT_PARTIAL, "greeting", 1)

        assert service.get_partial("greeting").content == "Hello {{name}}"
        assert service.get_partial("greeting", version="latest").content == "second"
        assert service.get_partial("greeting", version="2").version == 2

    def test_list_partials_filters_by_workspace(self, service, partial):
        service.create_partial(DeclaredPartial(name="Other", content="x", workspace_id="ws-2"))

        assert [p.slug for p in service.list_partials(workspace_id="ws-1")] == ["greeting"]
        assert len(service.list_partials()) == 2

    def test_list_prompts_filters_by_collection(self, service, prompt):
        assert [p.slug for p in service.list_prompts(collection_id="col-1")] == ["support-bot"]
        assert service.list_prompts(collection_id="col-2") == []

    def test_get_missing_prompt(self, service):
        with pytest.raises(NotFoundError):
            service.get_prompt("nope")


class TestParseImportId:
    def test_slug_only(self):
        assert parse_import_id("greeting") == (None, "greeting")

    def test_workspace_and_slug(self):
        assert parse_import_id("ws-1/greeting") == ("ws-1", "greeting")

    @pytest.mark.parametrize("bad", ["", "/greeting", "ws-1/", "ws-1/a/b"])
    def test_invalid(self, bad):
        with pytest.raises(InvalidDeclarationError):
            parse_import_id(bad)
