#!/usr/bin/env python3
"""
Built-in scenario catalogue

Seed templates for the deterministic corpus: CRUD paths and transaction
lifecycle paths. Each template writes to its own collection so templates
and their variants never share state on a backend.
"""

from typing import Any, Dict, Tuple

from .scenario import Scenario, ScenarioCommand


def _scenario(scenario_id: str, description: str, *commands: ScenarioCommand) -> Scenario:
    return Scenario(scenario_id, description, commands)


def _command(name: str, payload: Dict[str, Any]) -> ScenarioCommand:
    return ScenarioCommand(name, payload)


def _session(session_id: str, txn_number: int, start: bool = False) -> Dict[str, Any]:
    fields = {"lsid": {"id": session_id}, "txnNumber": txn_number, "autocommit": False}
    if start:
        fields["startTransaction"] = True
    return fields


CRUD_SCENARIOS: Tuple[Scenario, ...] = (
    _scenario(
        "crud.insert-find",
        "insert documents and fetch a subset with find",
        _command("insert", {
            "collection": "users_insert_find",
            "documents": [
                {"_id": 1, "name": "alpha", "tier": "gold"},
                {"_id": 2, "name": "beta", "tier": "silver"},
            ],
        }),
        _command("find", {"collection": "users_insert_find", "filter": {"tier": "gold"}}),
    ),
    _scenario(
        "crud.update-multi-set",
        "update multiple documents with $set",
        _command("insert", {
            "collection": "users_update_set",
            "documents": [
                {"_id": 1, "status": "new"},
                {"_id": 2, "status": "new"},
                {"_id": 3, "status": "old"},
            ],
        }),
        _command("update", {
            "collection": "users_update_set",
            "updates": [{"q": {"status": "new"}, "u": {"$set": {"status": "ready"}}, "multi": True}],
        }),
        _command("find", {"collection": "users_update_set", "filter": {"status": "ready"}}),
    ),
    _scenario(
        "crud.update-inc",
        "increment numeric fields with $inc",
        _command("insert", {
            "collection": "users_update_inc",
            "documents": [
                {"_id": 1, "group": "a", "score": 1},
                {"_id": 2, "group": "a", "score": 4},
                {"_id": 3, "group": "b", "score": 7},
            ],
        }),
        _command("update", {
            "collection": "users_update_inc",
            "updates": [{"q": {"group": "a"}, "u": {"$inc": {"score": 2}}, "multi": True}],
        }),
        _command("find", {"collection": "users_update_inc", "filter": {"group": "a"}}),
    ),
    _scenario(
        "crud.delete-one",
        "delete one matching document",
        _command("insert", {
            "collection": "users_delete_one",
            "documents": [
                {"_id": 1, "kind": "temp"},
                {"_id": 2, "kind": "temp"},
                {"_id": 3, "kind": "stable"},
            ],
        }),
        _command("delete", {
            "collection": "users_delete_one",
            "deletes": [{"q": {"kind": "temp"}, "limit": 1}],
        }),
        _command("find", {"collection": "users_delete_one", "filter": {"kind": "temp"}}),
    ),
    _scenario(
        "crud.delete-many",
        "delete all matching documents",
        _command("insert", {
            "collection": "users_delete_many",
            "documents": [
                {"_id": 1, "tag": "drop"},
                {"_id": 2, "tag": "drop"},
                {"_id": 3, "tag": "keep"},
            ],
        }),
        _command("delete", {
            "collection": "users_delete_many",
            "deletes": [{"q": {"tag": "drop"}, "limit": 0}],
        }),
        _command("find", {"collection": "users_delete_many", "filter": {"tag": "drop"}}),
    ),
    _scenario(
        "crud.create-indexes-duplicate-key",
        "create unique index then verify duplicate insert failure path",
        _command("insert", {
            "collection": "users_unique_email",
            "documents": [
                {"_id": 1, "email": "alpha@example.com"},
                {"_id": 2, "email": "beta@example.com"},
            ],
        }),
        _command("createIndexes", {
            "collection": "users_unique_email",
            "indexes": [{"name": "email_1", "key": {"email": 1}, "unique": True}],
        }),
        _command("insert", {
            "collection": "users_unique_email",
            "documents": [{"_id": 3, "email": "alpha@example.com"}],
        }),
    ),
)

TRANSACTION_SCENARIOS: Tuple[Scenario, ...] = (
    _scenario(
        "txn.start-commit-path",
        "start transaction, perform write, commit, then verify committed view",
        _command("insert", {
            "collection": "txn_start_commit",
            "documents": [{"_id": 1, "stage": "started"}],
            **_session("session-start-commit", 1, start=True),
        }),
        _command("update", {
            "collection": "txn_start_commit",
            "updates": [{"q": {"_id": 1}, "u": {"$set": {"stage": "committed"}}}],
            **_session("session-start-commit", 1),
        }),
        _command("commitTransaction", _session("session-start-commit", 1)),
        _command("find", {"collection": "txn_start_commit", "filter": {"_id": 1}}),
    ),
    _scenario(
        "txn.start-abort-path",
        "start transaction, perform write, abort, then verify rollback view",
        _command("insert", {
            "collection": "txn_start_abort",
            "documents": [{"_id": 1, "stage": "to-abort"}],
            **_session("session-start-abort", 1, start=True),
        }),
        _command("abortTransaction", _session("session-start-abort", 1)),
        _command("find", {"collection": "txn_start_abort", "filter": {"_id": 1}}),
    ),
    _scenario(
        "txn.no-such-transaction-path",
        "execute transactional command without active transaction",
        _command("find", {
            "collection": "txn_no_such_transaction",
            "filter": {"_id": 1},
            **_session("session-no-such-transaction", 7),
        }),
    ),
    _scenario(
        "txn.lifecycle-transition-path",
        "commit one transaction, abort the next, and verify only committed writes persist",
        _command("insert", {
            "collection": "txn_lifecycle_transition",
            "documents": [{"_id": 1, "status": "committed"}],
            **_session("session-lifecycle", 1, start=True),
        }),
        _command("commitTransaction", _session("session-lifecycle", 1)),
        _command("insert", {
            "collection": "txn_lifecycle_transition",
            "documents": [{"_id": 2, "status": "aborted"}],
            **_session("session-lifecycle", 2, start=True),
        }),
        _command("abortTransaction", _session("session-lifecycle", 2)),
        _command("find", {"collection": "txn_lifecycle_transition", "filter": {}}),
    ),
)

# Known-failing trace replayed by the reproduction-time estimator: a
# successful ping followed by a command no server implements.
REPRO_TRACE = _scenario(
    "repro.unknown-command",
    "replay a ping followed by an unknown command on a clean backend",
    _command("ping", {"$db": "admin"}),
    _command("doesNotExist", {"$db": "admin", "lsid": {"id": "repro-trace"}, "txnNumber": 1}),
)
REPRO_EXPECTED_CODE = 59
REPRO_EXPECTED_CODE_NAME = "CommandNotFound"


def base_templates() -> Tuple[Scenario, ...]:
    """All built-in templates, sorted by id."""
    return tuple(sorted(CRUD_SCENARIOS + TRANSACTION_SCENARIOS, key=lambda s: s.id))


def default_repro_trace() -> Scenario:
    return REPRO_TRACE
