"""Tests for ActivitySelector ordering, limit and count."""

from uuid import uuid4

from contract_kernel.selectors.activity_selector import ActivitySelector


class TestActivitySelector:

    def test_newest_first(self, session, create_contract, activity_logger,
                          user_actor, deterministic_clock):
        contract = create_contract()
        for note in ("first", "second", "third"):
            deterministic_clock.advance(10)
            activity_logger.append(contract.id, "comment", note, user_actor.user_id)

        selector = ActivitySelector(session)
        descriptions = [a.description for a in selector.list_for_contract(contract.id)]
        assert descriptions[:3] == ["third", "second", "first"]
        assert descriptions[-1] == "Contract created"
        assert selector.latest(contract.id).description == "third"

    def test_limit(self, session, create_contract, activity_logger,
                   user_actor, deterministic_clock):
        contract = create_contract()
        for note in ("a", "b"):
            deterministic_clock.advance(10)
            activity_logger.append(contract.id, "comment", note, user_actor.user_id)

        rows = ActivitySelector(session).list_for_contract(contract.id, limit=2)
        assert [a.description for a in rows] == ["b", "a"]

    def test_scoped_to_contract(self, session, create_contract):
        first, second = create_contract(), create_contract()
        selector = ActivitySelector(session)

        assert selector.count_for_contract(first.id) == 1
        assert {a.contract_id for a in selector.list_for_contract(second.id)} == {second.id}

    def test_empty(self, session):
        selector = ActivitySelector(session)
        assert selector.list_for_contract(uuid4()) == []
        assert selector.count_for_contract(uuid4()) == 0
        assert selector.latest(uuid4()) is None
