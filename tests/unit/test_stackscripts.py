import dataclasses

import pytest

from linode_machine.core.models import StackScriptRef
from linode_machine.providers.exceptions import NotFoundError, ProviderAPIError
from linode_machine.providers.linode.stackscripts import StackScriptResolver


@pytest.fixture
def catalog(fake_api):
    fake_api.stackscripts = [
        {"id": 10, "username": "bob", "label": "setup"},
        {"id": 11, "username": "alice", "label": "setup"},
        {"id": 12, "username": "alice", "label": "other"},
    ]
    return fake_api


class TestStackScriptResolver:
    def test_no_reference_makes_no_calls(self, fake_api, make_config) -> None:
        config = make_config()

        assert StackScriptResolver(fake_api).resolve(config) is config
        assert fake_api.calls == []

    def test_owner_label_picks_matching_owner(self, catalog, make_config) -> None:
        config = make_config(linode_stackscript="alice/setup")

        resolved = StackScriptResolver(catalog).resolve(config)

        assert resolved.stackscript == StackScriptRef(script_id=11, owner="alice", label="setup")
        assert catalog.calls == [("list_stackscripts", "setup")]

    def test_other_fields_kept(self, catalog, make_config) -> None:
        config = make_config(linode_stackscript="alice/setup", linode_region="eu-west")

        resolved = StackScriptResolver(catalog).resolve(config)

        assert dataclasses.replace(resolved, stackscript=config.stackscript) == config

    def test_only_other_owner_is_not_found(self, fake_api, make_config) -> None:
        fake_api.stackscripts = [{"id": 10, "username": "bob", "label": "setup"}]
        config = make_config(linode_stackscript="alice/setup")

        with pytest.raises(NotFoundError, match="StackScript not found: alice/setup"):
            StackScriptResolver(fake_api).resolve(config)

    def test_label_mismatch_is_not_found(self, fake_api, make_config) -> None:
        # a server that ignores the label filter must not leak other scripts
        fake_api.list_stackscripts = lambda label: [
            {"id": 12, "username": "alice", "label": "other"}
        ]
        config = make_config(linode_stackscript="alice/setup")

        with pytest.raises(NotFoundError):
            StackScriptResolver(fake_api).resolve(config)

    def test_numeric_id_fetched_by_id(self, catalog, make_config) -> None:
        config = make_config(linode_stackscript="12")

        resolved = StackScriptResolver(catalog).resolve(config)

        assert resolved.stackscript == StackScriptRef(script_id=12, owner="alice", label="other")
        assert catalog.calls == [("get_stackscript", 12)]

    def test_unknown_id_is_not_found(self, catalog, make_config) -> None:
        config = make_config(linode_stackscript="999")

        with pytest.raises(NotFoundError, match="StackScript 999 could not be used") as exc_info:
            StackScriptResolver(catalog).resolve(config)

        assert exc_info.value.stage == "stackscript"

    def test_other_api_errors_propagate(self, catalog, make_config) -> None:
        catalog.errors["list_stackscripts"] = ProviderAPIError("Server error", status=500)
        config = make_config(linode_stackscript="alice/setup")

        with pytest.raises(ProviderAPIError) as exc_info:
            StackScriptResolver(catalog).resolve(config)

        assert not isinstance(exc_info.value, NotFoundError)
        assert exc_info.value.status == 500
