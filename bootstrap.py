"""
Restaurant database bootstrap.

Ensures the users, restaurants and carts collections exist with their
validators attached, then ensures the declared indexes exist on them.
Every step tolerates its target already being in place, so the routine can
be re-run and raced by several replicas.

Usage:
    python bootstrap.py
"""
import sys
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import connect, load_config
from errors import BootstrapError, ConfigurationConflict, classify_error, is_namespace_exists
from schemas import COLLECTIONS, INDEXES, CollectionSpec, IndexSpec, indexes_for

SUCCESS_MESSAGE = "MongoDB collections and indexes created successfully for restaurant ordering system"

Status = Literal["created", "unchanged", "updated", "validator_mismatch", "failed"]

# Fields index_information reports that are not index options
_INDEX_METADATA = {"v", "key", "ns", "background"}


class StepResult(BaseModel):
    step: str
    status: Status
    error_kind: Optional[str] = None
    message: Optional[str] = None


class BootstrapReport(BaseModel):
    results: List[StepResult] = []

    @property
    def failures(self) -> List[StepResult]:
        return [r for r in self.results if r.status == "failed"]

    @property
    def warnings(self) -> List[StepResult]:
        return [r for r in self.results if r.status == "validator_mismatch"]

    @property
    def ok(self) -> bool:
        return not self.failures

    def failure_lines(self) -> List[str]:
        return [f"❌ {r.step}: {r.error_kind}: {r.message}" for r in self.failures]


def _collection_info(db: Database, name: str) -> Optional[Dict[str, Any]]:
    for info in db.list_collections(filter={"name": name}):
        return info
    return None


def _existing_validator(info: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return info.get("options", {}).get("validator")


def ensure_collection(db: Database, spec: CollectionSpec, sync_validators: bool = False) -> StepResult:
    """
    Create a collection with its validator if it does not exist.

    An existing collection whose validator differs is left untouched and
    reported as ``validator_mismatch``, unless ``sync_validators`` is set,
    in which case the declared validator is applied with collMod.

    Raises:
        BootstrapError: the step failed; see errors.classify_error
    """
    step = f"collection {spec.name}"
    try:
        info = _collection_info(db, spec.name)
        if info is None:
            try:
                db.create_collection(spec.name, check_exists=False, validator=spec.validator)
                return StepResult(step=step, status="created")
            except PyMongoError as e:
                if not is_namespace_exists(e):
                    raise
                # Another replica created it first
                info = _collection_info(db, spec.name)
                if info is None:
                    raise

        existing = _existing_validator(info)
        if existing == spec.validator:
            return StepResult(step=step, status="unchanged")

        if sync_validators:
            db.command("collMod", spec.name, validator=spec.validator)
            return StepResult(step=step, status="updated")

        detail = "no validator" if existing is None else "a different validator"
        message = f"existing collection has {detail}; left untouched"
        print(f"⚠️  {step}: {message}", file=sys.stderr)
        return StepResult(step=step, status="validator_mismatch", message=message)

    except PyMongoError as e:
        error = classify_error(e, step=step)
        if error is None:
            raise
        raise error from e


def _index_matches(existing: Dict[str, Any], spec: IndexSpec) -> bool:
    keys = [(field, direction) for field, direction in existing.get("key", [])]
    options = {name: value for name, value in existing.items() if name not in _INDEX_METADATA}
    if options.get("unique") is False:
        del options["unique"]
    # Any option beyond the declared ones is a mismatch
    return keys == list(spec.keys) and options == spec.options()


def ensure_index(db: Database, spec: IndexSpec) -> StepResult:
    """
    Create an index if it does not exist.

    An identical existing index is a no-op. An index with the same name but
    different keys or options raises ConfigurationConflict; so does the
    server when the same keys exist under other options.
    """
    step = f"index {spec.label}"
    try:
        existing = db[spec.collection].index_information().get(spec.name)
        if existing is not None:
            if _index_matches(existing, spec):
                return StepResult(step=step, status="unchanged")
            raise ConfigurationConflict(
                f"index {spec.name} exists with {existing}, declared keys={spec.keys} options={spec.options()}",
                step=step,
            )

        db[spec.collection].create_index(spec.keys, **spec.options())
        return StepResult(step=step, status="created")

    except PyMongoError as e:
        error = classify_error(e, step=step)
        if error is None:
            raise
        raise error from e


def _run_step(report: BootstrapReport, fn, *args, **kwargs) -> None:
    try:
        report.results.append(fn(*args, **kwargs))
    except BootstrapError as e:
        if e.fatal:
            raise
        report.results.append(StepResult(step=e.step, status="failed", error_kind=e.kind, message=str(e)))


def run_bootstrap(db: Database, sync_validators: bool = False) -> BootstrapReport:
    """
    Ensure every declared collection, then every declared index.

    Conflicts, malformed definitions and other per-step driver errors are
    recorded in the report and the remaining steps still run. Connection and
    permission errors abort.

    Args:
        db: Target database
        sync_validators: Apply declared validators to existing collections

    Returns:
        BootstrapReport: one StepResult per collection and index
    """
    report = BootstrapReport()

    for spec in COLLECTIONS:
        _run_step(report, ensure_collection, db, spec, sync_validators=sync_validators)

    for spec in INDEXES:
        _run_step(report, ensure_index, db, spec)

    return report


def inspect_collection(db: Database, spec: CollectionSpec) -> Dict[str, Any]:
    """Read-only status of one declared collection, for health checks."""
    info = _collection_info(db, spec.name)
    if info is None:
        return {"exists": False, "validator_matches": False, "missing_indexes": [i.name for i in indexes_for(spec.name)]}

    present = db[spec.name].index_information()
    missing = [i.name for i in indexes_for(spec.name) if not (i.name in present and _index_matches(present[i.name], i))]
    return {
        "exists": True,
        "validator_matches": _existing_validator(info) == spec.validator,
        "missing_indexes": missing,
    }


def main() -> int:
    try:
        config = load_config()
    except ValueError as e:
        print(f"❌ config: {e}", file=sys.stderr)
        return 1

    try:
        client, db = connect(config)
    except BootstrapError as e:
        print(f"❌ {e.step}: {e.kind}: {e}", file=sys.stderr)
        return 1

    try:
        report = run_bootstrap(db, sync_validators=config.sync_validators)
    except BootstrapError as e:
        print(f"❌ {e.step}: {e.kind}: {e}", file=sys.stderr)
        return 1
    except PyMongoError as e:
        print(f"❌ bootstrap: {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()

    if not report.ok:
        for line in report.failure_lines():
            print(line, file=sys.stderr)
        return 1

    print(f"✅ {SUCCESS_MESSAGE}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
