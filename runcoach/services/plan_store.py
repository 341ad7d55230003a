"""Durable storage for the runner profile and training plan."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import NamedTuple, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from runcoach.models.database_models import StoredValue
from runcoach.models.plan import TrainingPlan, UserProfile


logger = logging.getLogger(__name__)

PROFILE_KEY = "runner_profile"
PLAN_KEY = "training_plan"
CURRENT_SCHEMA_VERSION = 1

ModelT = TypeVar("ModelT", bound=BaseModel)


class StoredState(NamedTuple):
    profile: UserProfile | None
    plan: TrainingPlan | None


class PlanStore:
    """Reads and writes the two session slots in the ``stored_values`` table.

    Reads never fail on bad data: a missing, corrupt or unreadable slot comes
    back as ``None`` so the runner is sent through onboarding again.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def load(self) -> StoredState:
        with self._session_factory() as session:
            rows = {
                row.key: (row.payload, row.schema_version)
                for row in session.scalars(
                    select(StoredValue).where(StoredValue.key.in_((PROFILE_KEY, PLAN_KEY)))
                )
            }

        state = StoredState(
            profile=self._decode(PROFILE_KEY, rows.get(PROFILE_KEY), UserProfile),
            plan=self._decode(PLAN_KEY, rows.get(PLAN_KEY), TrainingPlan),
        )
        logger.info(
            "Loaded stored state | profile=%s plan=%s",
            state.profile is not None,
            state.plan.id if state.plan else None,
        )
        return state

    def save(self, profile: UserProfile | None = None, plan: TrainingPlan | None = None) -> None:
        """Write each present value to its slot in one transaction."""

        values: dict[str, str] = {}
        if profile is not None:
            values[PROFILE_KEY] = profile.model_dump_json()
        if plan is not None:
            values[PLAN_KEY] = plan.model_dump_json()
        if not values:
            return

        with self._session_factory() as session:
            try:
                for key, payload in values.items():
                    session.merge(
                        StoredValue(
                            key=key,
                            payload=payload,
                            schema_version=CURRENT_SCHEMA_VERSION,
                            updated_at=datetime.utcnow(),
                        )
                    )
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                logger.exception("Failed to persist %s", ", ".join(values))
                raise

        logger.debug("Persisted %s", ", ".join(values))

    def clear(self) -> None:
        with self._session_factory() as session:
            try:
                session.execute(delete(StoredValue).where(StoredValue.key.in_((PROFILE_KEY, PLAN_KEY))))
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                logger.exception("Failed to clear stored state")
                raise
        logger.info("Cleared stored profile and plan")

    @staticmethod
    def _decode(
        key: str,
        row: tuple[str, int] | None,
        model: type[ModelT],
    ) -> ModelT | None:
        if row is None:
            return None

        payload, schema_version = row
        if schema_version != CURRENT_SCHEMA_VERSION:
            logger.info(
                "Reading %s written with schema version %s (current %s)",
                key,
                schema_version,
                CURRENT_SCHEMA_VERSION,
            )

        try:
            return model.model_validate_json(payload)
        except ValidationError as err:
            logger.warning("Discarding unreadable %s: %s", key, err)
            return None
