"""Unit tests for ActorResolver, the priority rule, and the visibility delay."""

from __future__ import annotations

import pytest

from recordbus.core.resolver import ActorResolver, choose_actor, extract_identity
from recordbus.core.scheduling import VisibilityDelay
from recordbus.models.events import UNKNOWN_ACTOR, Operation
from recordbus.models.resolution import ActorSource, LookupResult, LookupStatus


class TestChooseActor:
    """The single priority rule: record creator, then hint, then unknown."""

    def test_success_beats_hint(self):
        res = choose_actor(LookupResult.success("u1"), "u0")
        assert (res.actor, res.source) == ("u1", ActorSource.RECORD)

    @pytest.mark.parametrize(
        "result",
        [
            LookupResult.miss(),
            LookupResult.failed("boom"),
            LookupResult.unavailable(),
            LookupResult.skipped(),
        ],
    )
    def test_non_success_uses_hint(self, result):
        res = choose_actor(result, "u0")
        assert (res.actor, res.source, res.lookup) == ("u0", ActorSource.HINT, result.status)

    def test_no_hint_falls_to_unknown(self):
        res = choose_actor(LookupResult.failed("boom"), None)
        assert (res.actor, res.source) == (UNKNOWN_ACTOR, ActorSource.UNKNOWN)


class TestExtractIdentity:
    def test_plain_value(self):
        assert extract_identity("abc") == "abc"

    def test_numeric_value_stringified(self):
        assert extract_identity(42) == "42"

    def test_expanded_relation(self):
        assert extract_identity({"id": "u7", "email": "x@y"}) == "u7"

    @pytest.mark.parametrize("value", [None, "", "   ", {"email": "x@y"}])
    def test_empty_values(self, value):
        assert extract_identity(value) is None


class TestActorResolver:
    def test_create_uses_record_creator(self, make_lookup):
        lookup = make_lookup({("customers", 7): "u1"})
        res = ActorResolver(lookup).resolve(Operation.CREATE, "customers", 7, "u0")
        assert res.actor == "u1"
        assert res.lookup is LookupStatus.SUCCESS
        assert lookup.calls == [("customers", 7, ["user_created"])]

    def test_requests_only_creator_field(self, make_lookup):
        lookup = make_lookup({("customers", 7): "u1"})
        ActorResolver(lookup, creator_field="owner").resolve(
            Operation.UPDATE, "customers", 7, None
        )
        assert lookup.calls[0][2] == ["owner"]

    def test_miss_falls_back_to_hint(self, make_lookup):
        lookup = make_lookup({("customers", 7): None})
        res = ActorResolver(lookup).resolve(Operation.UPDATE, "customers", 7, "u0")
        assert (res.actor, res.lookup) == ("u0", LookupStatus.MISS)

    def test_failure_falls_back_to_hint(self, make_lookup):
        lookup = make_lookup(failing=[7])
        res = ActorResolver(lookup).resolve(Operation.UPDATE, "customers", 7, "u0")
        assert (res.actor, res.lookup) == ("u0", LookupStatus.FAILED)

    def test_failure_without_hint_is_unknown(self, make_lookup):
        lookup = make_lookup(failing=[7])
        res = ActorResolver(lookup).resolve(Operation.CREATE, "customers", 7, None)
        assert res.actor == UNKNOWN_ACTOR

    def test_record_not_visible_yet_treated_as_failure(self, make_lookup):
        lookup = make_lookup({})  # raises KeyError: write not visible
        res = ActorResolver(lookup).resolve(Operation.CREATE, "customers", 99, "u0")
        assert (res.actor, res.lookup) == ("u0", LookupStatus.FAILED)

    def test_non_mapping_response_is_failure(self):
        class _Weird:
            def read_one(self, collection, key, fields):
                return ["not", "a", "record"]

        res = ActorResolver(_Weird()).resolve(Operation.CREATE, "customers", 1, None)
        assert res.lookup is LookupStatus.FAILED
        assert res.actor == UNKNOWN_ACTOR

    def test_no_lookup_is_unavailable(self):
        res = ActorResolver(None).resolve(Operation.CREATE, "customers", 7, "u0")
        assert (res.actor, res.lookup) == ("u0", LookupStatus.UNAVAILABLE)

    def test_no_lookup_no_hint_is_unknown(self):
        res = ActorResolver(None).resolve(Operation.CREATE, "customers", 7, None)
        assert res.actor == UNKNOWN_ACTOR

    def test_delete_with_hint_never_looks_up(self, make_lookup, sleeper):
        lookup = make_lookup({("boutiques", 5): "creator"})
        resolver = ActorResolver(lookup, delay=VisibilityDelay(1.0, sleep=sleeper))
        res = resolver.resolve(Operation.DELETE, "boutiques", 5, "u2")
        assert (res.actor, res.lookup) == ("u2", LookupStatus.SKIPPED)
        assert lookup.calls == []
        assert sleeper.calls == []

    def test_delete_without_hint_skips_post_delete_lookup(self, make_lookup):
        lookup = make_lookup(failing=[5])
        res = ActorResolver(lookup).resolve(Operation.DELETE, "boutiques", 5, None)
        assert (res.actor, res.lookup) == (UNKNOWN_ACTOR, LookupStatus.SKIPPED)
        assert lookup.calls == []

    def test_delete_without_hint_uses_pre_delete_capable_lookup(self, make_lookup):
        lookup = make_lookup({("boutiques", 5): "u5"}, serves_deleted_records=True)
        res = ActorResolver(lookup).resolve(Operation.DELETE, "boutiques", 5, None)
        assert (res.actor, res.lookup) == ("u5", LookupStatus.SUCCESS)

    def test_delay_taken_once_before_lookup(self, make_lookup, sleeper):
        lookup = make_lookup({("customers", 7): "u1"})
        resolver = ActorResolver(lookup, delay=VisibilityDelay(0.25, sleep=sleeper))
        resolver.resolve(Operation.CREATE, "customers", 7, None)
        assert sleeper.calls == [0.25]
        assert len(lookup.calls) == 1

    def test_no_retry_after_failure(self, make_lookup, sleeper):
        lookup = make_lookup(failing=[7])
        resolver = ActorResolver(lookup, delay=VisibilityDelay(0.25, sleep=sleeper))
        resolver.resolve(Operation.UPDATE, "customers", 7, "u0")
        assert sleeper.calls == [0.25]
        assert len(lookup.calls) == 1

    def test_no_caching_across_calls(self, make_lookup):
        lookup = make_lookup({("customers", 7): "u1"})
        resolver = ActorResolver(lookup)
        resolver.resolve(Operation.UPDATE, "customers", 7, None)
        resolver.resolve(Operation.UPDATE, "customers", 7, None)
        assert len(lookup.calls) == 2


class TestVisibilityDelay:
    def test_zero_delay_never_sleeps(self, sleeper):
        VisibilityDelay(0, sleep=sleeper).wait()
        assert sleeper.calls == []

    def test_negative_delay_clamped(self, sleeper):
        delay = VisibilityDelay(-1, sleep=sleeper)
        delay.wait()
        assert delay.seconds == 0.0
        assert sleeper.calls == []

    def test_fixed_interval(self, sleeper):
        delay = VisibilityDelay(0.5, sleep=sleeper)
        delay.wait()
        delay.wait()
        assert sleeper.calls == [0.5, 0.5]
