"""Mutation pipeline: the only path through which collections change.

Each mutation runs validate -> apply -> persist -> return while holding the
model's lock. Changes are applied to a copy of the collection and installed
only once the store has persisted it, so a failed validation or a failed
save leaves no observable effect. The locked section runs in its own task
shielded from caller cancellation: a mutation that has started applying
always reaches disk.
"""

import asyncio
import copy
import uuid
from typing import Any, Callable

from sealdb.application.services.query_service import find_unique_index, normalize_where
from sealdb.core.exceptions import (
    NotFoundError,
    RecordValidationError,
    UniqueConstraintError,
    ValidationError,
)
from sealdb.core.filters import evaluate, strict_equals
from sealdb.core.logging import LoggingContext, get_logger
from sealdb.domain.entities.schema import FieldType, SchemaDefinition, SchemaModel
from sealdb.domain.services.record_validator import RecordValidator
from sealdb.infrastructure.persistence.collection_cache import CollectionCache

logger = get_logger(__name__)

Records = list[dict[str, Any]]
References = dict[str, Records]


def _ordered(model: SchemaModel, record: dict[str, Any]) -> dict[str, Any]:
    """Lay a record out in schema field order."""
    return {name: record[name] for name in model.fields if name in record}


def _generate_id(model: SchemaModel, records: Records) -> Any:
    id_field = model.id_field
    if id_field.type == FieldType.NUMBER:
        numeric = [
            r[id_field.name]
            for r in records
            if isinstance(r.get(id_field.name), (int, float)) and not isinstance(r.get(id_field.name), bool)
        ]
        return int(max(numeric)) + 1 if numeric else 1
    return str(uuid.uuid4())


def _find_conflict(
    model: SchemaModel, records: Records, candidate: dict[str, Any], exclude: int | None = None
) -> tuple[str, Any] | None:
    """Return ``(field, value)`` of the first unique field ``candidate`` duplicates."""
    for spec in model.unique_fields:
        value = candidate.get(spec.name)
        if value is None:
            continue
        for index, other in enumerate(records):
            if index != exclude and strict_equals(other.get(spec.name), value):
                return spec.name, value
    return None


class MutationPipeline:
    """Applies create/update/delete operations under schema constraints."""

    def __init__(self, schema: SchemaDefinition, cache: CollectionCache) -> None:
        """Initialize the pipeline.

        Args:
            schema: The loaded schema definition.
            cache: Cache owning every model's collection.
        """
        self.schema = schema
        self.cache = cache

    # ------------------------------------------------------------------ #
    # Locked execution
    # ------------------------------------------------------------------ #

    async def _run(
        self,
        model_name: str,
        operation: str,
        mutate: Callable[[SchemaModel, Records, References], tuple[Any, Records | None]],
    ) -> Any:
        """Run ``mutate`` under the model lock and persist what it returns.

        ``mutate`` receives the model, a copy of its collection and the
        collections of referenced models. It returns ``(result, new_records)``;
        ``new_records`` is None when nothing needs persisting.
        """
        model = self.schema.get_model(model_name)
        task = asyncio.ensure_future(self._locked(model, operation, mutate))
        task.add_done_callback(self._log_detached_failure)
        return await asyncio.shield(task)

    @staticmethod
    def _log_detached_failure(task: "asyncio.Task[Any]") -> None:
        # Retrieve the exception so a cancelled caller does not leave it unobserved.
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Mutation failed", error=repr(task.exception()))

    async def _locked(
        self,
        model: SchemaModel,
        operation: str,
        mutate: Callable[[SchemaModel, Records, References], tuple[Any, Records | None]],
    ) -> Any:
        with LoggingContext(operation_id=f"op_{uuid.uuid4().hex[:12]}", model=model.name, operation=operation):
            async with self.cache.lock(model.name):
                records = list(await self.cache.get(model.name))
                references = await self._load_references(model)
                result, new_records = mutate(model, records, references)
                if new_records is not None:
                    await self.cache.commit(model.name, new_records)
                    logger.info("Mutation committed", count=len(new_records))
                return result

    async def _load_references(self, model: SchemaModel) -> References:
        references: References = {}
        for spec in model.reference_fields:
            if spec.ref != model.name and spec.ref not in references:
                references[spec.ref] = await self.cache.get(spec.ref)
        return references

    # ------------------------------------------------------------------ #
    # Constraint checks
    # ------------------------------------------------------------------ #

    def _check_references(
        self, model: SchemaModel, record: dict[str, Any], working: Records, references: References
    ) -> list[RecordValidationError]:
        errors = []
        for spec in model.reference_fields:
            value = record.get(spec.name)
            if value is None:
                continue
            target = self.schema.get_model(spec.ref)
            candidates = working if spec.ref == model.name else references.get(spec.ref, [])
            target_id = target.id_field.name
            if not any(strict_equals(r.get(target_id), value) for r in candidates):
                errors.append(
                    RecordValidationError(
                        field=spec.name,
                        message=f"No '{spec.ref}' record with {target_id} {value!r}",
                        code="invalid_reference",
                    )
                )
        return errors

    def _constraint_errors(
        self,
        model: SchemaModel,
        record: dict[str, Any],
        working: Records,
        references: References,
    ) -> list[RecordValidationError]:
        return RecordValidator.check_required(record, model) + self._check_references(
            model, record, working, references
        )

    def _validated(self, model: SchemaModel, data: Any, partial: bool) -> dict[str, Any]:
        processed, errors = RecordValidator.validate_and_apply_defaults(data, model, partial=partial)
        if errors:
            raise ValidationError(model.name, errors)
        return processed

    def _build_record(self, model: SchemaModel, data: Any, working: Records) -> dict[str, Any]:
        """Validate create data, apply defaults and assign an id."""
        processed = self._validated(model, data, partial=False)
        id_name = model.id_field.name
        if processed.get(id_name) is None:
            processed[id_name] = _generate_id(model, working)
        return _ordered(model, processed)

    def _apply_create(self, model: SchemaModel, working: Records, references: References, data: Any) -> dict[str, Any]:
        record = self._build_record(model, data, working)
        errors = self._constraint_errors(model, record, working + [record], references)
        if errors:
            raise ValidationError(model.name, errors)
        conflict = _find_conflict(model, working, record)
        if conflict is not None:
            raise UniqueConstraintError(model.name, *conflict)
        working.append(record)
        logger.info("Record created", record_id=record[model.id_field.name])
        return record

    def _apply_update(
        self,
        model: SchemaModel,
        working: Records,
        references: References,
        index: int,
        changes: dict[str, Any],
    ) -> dict[str, Any]:
        merged = _ordered(model, {**working[index], **changes})
        candidates = working[:index] + [merged] + working[index + 1 :]
        errors = self._constraint_errors(model, merged, candidates, references)
        if errors:
            raise ValidationError(model.name, errors)
        conflict = _find_conflict(model, working, merged, exclude=index)
        if conflict is not None:
            raise UniqueConstraintError(model.name, *conflict)
        working[index] = merged
        logger.info("Record updated", record_id=merged.get(model.id_field.name))
        return merged

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    async def create(self, model_name: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create one record.

        Raises:
            ValidationError: Unknown field, wrong type, missing required value
                or dangling reference.
            UniqueConstraintError: Duplicate id or unique value.
        """

        def mutate(model: SchemaModel, working: Records, references: References) -> tuple[Any, Records]:
            record = self._apply_create(model, working, references, data)
            return copy.deepcopy(record), working

        return await self._run(model_name, "create", mutate)

    async def create_many(
        self, model_name: str, data: list[dict[str, Any]], skip_duplicates: bool = False
    ) -> int:
        """Create several records in one write.

        All-or-nothing: any invalid record rejects the whole batch. With
        ``skip_duplicates`` records that would violate a unique constraint
        are left out instead.

        Returns:
            Number of records created.
        """

        def mutate(model: SchemaModel, working: Records, references: References) -> tuple[Any, Records | None]:
            if not isinstance(data, (list, tuple)):
                raise ValidationError(
                    model.name,
                    [RecordValidationError(field="data", message="create_many expects a list", code="invalid_type")],
                )
            created = 0
            for item in data:
                try:
                    self._apply_create(model, working, references, item)
                except UniqueConstraintError as e:
                    if not skip_duplicates:
                        raise
                    logger.info("Duplicate skipped", field=e.field)
                    continue
                created += 1
            return created, (working if created else None)

        return await self._run(model_name, "create_many", mutate)

    async def update(self, model_name: str, where: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
        """Update the record identified by id or a unique field.

        Raises:
            QueryError: If ``where`` does not name a unique field.
            NotFoundError: If no record matches.
            ValidationError: If the merged record breaks a constraint.
            UniqueConstraintError: If the merged record duplicates a unique value.
        """

        def mutate(model: SchemaModel, working: Records, references: References) -> tuple[Any, Records]:
            changes = self._validated(model, data, partial=True)
            index = find_unique_index(model, working, where)
            if index is None:
                raise NotFoundError(model.name, where)
            merged = self._apply_update(model, working, references, index, changes)
            return copy.deepcopy(merged), working

        return await self._run(model_name, "update", mutate)

    async def update_many(self, model_name: str, where: dict[str, Any] | None, data: dict[str, Any]) -> int:
        """Apply ``data`` to every record matching ``where``.

        Invalid ``data`` (unknown field, wrong type) rejects the call. A record
        whose merged values would break a required, unique or reference
        constraint is skipped and not counted. Records left unchanged by the
        merge are not counted either.

        Returns:
            Number of records changed.
        """

        def mutate(model: SchemaModel, working: Records, references: References) -> tuple[Any, Records | None]:
            changes = self._validated(model, data, partial=True)
            condition = normalize_where(model, where)
            targets = [i for i, record in enumerate(working) if evaluate(record, condition)]
            changed = 0
            for index in targets:
                current = working[index]
                if strict_equals(_ordered(model, {**current, **changes}), current):
                    continue
                try:
                    self._apply_update(model, working, references, index, changes)
                except (ValidationError, UniqueConstraintError) as e:
                    logger.warning(
                        "Record skipped by update_many",
                        record_id=current.get(model.id_field.name),
                        reason=str(e),
                    )
                    continue
                changed += 1
            return changed, (working if changed else None)

        return await self._run(model_name, "update_many", mutate)

    async def upsert(
        self,
        model_name: str,
        where: dict[str, Any],
        create: dict[str, Any],
        update: dict[str, Any],
    ) -> dict[str, Any]:
        """Update the record identified by ``where``, or create it if absent."""

        def mutate(model: SchemaModel, working: Records, references: References) -> tuple[Any, Records]:
            index = find_unique_index(model, working, where)
            if index is None:
                record = self._apply_create(model, working, references, create)
            else:
                changes = self._validated(model, update, partial=True)
                record = self._apply_update(model, working, references, index, changes)
            return copy.deepcopy(record), working

        return await self._run(model_name, "upsert", mutate)

    async def delete(self, model_name: str, where: dict[str, Any]) -> dict[str, Any]:
        """Delete the record identified by id or a unique field.

        Raises:
            QueryError: If ``where`` does not name a unique field.
            NotFoundError: If no record matches.
        """

        def mutate(model: SchemaModel, working: Records, references: References) -> tuple[Any, Records]:
            index = find_unique_index(model, working, where)
            if index is None:
                raise NotFoundError(model.name, where)
            removed = working.pop(index)
            logger.info("Record deleted", record_id=removed.get(model.id_field.name))
            return copy.deepcopy(removed), working

        return await self._run(model_name, "delete", mutate)

    async def delete_many(self, model_name: str, where: dict[str, Any] | None = None) -> int:
        """Delete every record matching ``where``.

        Zero matches is not an error and performs no write.

        Returns:
            Number of records deleted.
        """

        def mutate(model: SchemaModel, working: Records, references: References) -> tuple[Any, Records | None]:
            condition = normalize_where(model, where)
            kept = [record for record in working if not evaluate(record, condition)]
            deleted = len(working) - len(kept)
            return deleted, (kept if deleted else None)

        return await self._run(model_name, "delete_many", mutate)
