"""Subscription persistence."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from ..db.models import SubscriptionModel
from ..entities import Subscription, SubscriptionPlan, SubscriptionStatus
from ..errors import NotFoundError
from .base import Repository, audit_of

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = (
    "stripe_customer_id",
    "stripe_subscription_id",
    "current_period_end",
    "cancel_at_period_end",
    "canceled_at",
    "trial_ends_at",
    "access_revoked_at",
    "access_revoke_reason",
)


class SubscriptionRepository(Repository):
    entity = "subscription"

    def create(self, subscription: Subscription, *, uow: Optional[Session] = None) -> Subscription:
        """Insert the user's subscription.

        ``user_id`` stays unique across tombstones, so a previously deleted
        subscription row of the same user is revived in place.
        """
        now = self._clock()
        with self._unit(uow, "create", user_id=subscription.user_id) as session:
            stmt = select(SubscriptionModel).where(
                SubscriptionModel.user_id == subscription.user_id,
                SubscriptionModel.deleted_at.is_not(None),
            )
            model = session.execute(stmt).scalar_one_or_none()
            if model is None:
                model = SubscriptionModel(id=subscription.id or self._id_factory(), user_id=subscription.user_id)
                session.add(model)
            else:
                logger.info("Reviving deleted subscription %s for user %s", model.id, subscription.user_id)
                model.deleted_at = None
            model.created_at = now
            model.updated_at = now
            self._apply(model, subscription)
            session.flush()
            return self._to_domain(model)

    def get_by_user_id(self, user_id: str, *, uow: Optional[Session] = None) -> Subscription:
        stmt = select(SubscriptionModel).where(SubscriptionModel.user_id == user_id)
        return self._get_one(stmt, uow, user_id=user_id)

    def get_by_stripe_customer_id(self, customer_id: str, *, uow: Optional[Session] = None) -> Subscription:
        stmt = (
            select(SubscriptionModel)
            .where(SubscriptionModel.stripe_customer_id == customer_id)
            .order_by(SubscriptionModel.updated_at.desc())
            .limit(1)
        )
        return self._get_one(stmt, uow, stripe_customer_id=customer_id)

    def get_by_stripe_subscription_id(self, subscription_id: str, *, uow: Optional[Session] = None) -> Subscription:
        stmt = select(SubscriptionModel).where(SubscriptionModel.stripe_subscription_id == subscription_id)
        return self._get_one(stmt, uow, stripe_subscription_id=subscription_id)

    def save(self, subscription: Subscription, *, uow: Optional[Session] = None) -> Subscription:
        """Replace every mutable field of the stored subscription with ``subscription``'s."""
        with self._unit(uow, "save", user_id=subscription.user_id) as session:
            model = self._find(session, subscription)
            if model is None:
                raise NotFoundError(self.entity, id=subscription.id, user_id=subscription.user_id)
            self._apply(model, subscription)
            model.updated_at = self._clock()
            session.flush()
            return self._to_domain(model)

    def delete(self, subscription_id: str, *, uow: Optional[Session] = None) -> None:
        with self._unit(uow, "delete", id=subscription_id) as session:
            stmt = select(SubscriptionModel).where(
                SubscriptionModel.id == subscription_id, SubscriptionModel.deleted_at.is_(None)
            )
            model = session.execute(stmt).scalar_one_or_none()
            if model is None:
                raise NotFoundError(self.entity, id=subscription_id)
            now = self._clock()
            model.deleted_at = now
            model.updated_at = now
            session.flush()

    def _get_one(self, stmt: Select, uow: Optional[Session], **lookup: str) -> Subscription:
        stmt = stmt.where(SubscriptionModel.deleted_at.is_(None))
        with self._unit(uow, "get", **lookup) as session:
            model = session.execute(stmt).scalar_one_or_none()
            if model is None:
                raise NotFoundError(self.entity, **lookup)
            return self._to_domain(model)

    @staticmethod
    def _find(session: Session, subscription: Subscription) -> Optional[SubscriptionModel]:
        stmt = select(SubscriptionModel).where(SubscriptionModel.deleted_at.is_(None))
        if subscription.id:
            stmt = stmt.where(SubscriptionModel.id == subscription.id)
        else:
            stmt = stmt.where(SubscriptionModel.user_id == subscription.user_id)
        return session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _apply(model: SubscriptionModel, subscription: Subscription) -> None:
        model.plan = subscription.plan.value
        model.status = subscription.status.value
        for field in _MUTABLE_FIELDS:
            setattr(model, field, getattr(subscription, field))

    @staticmethod
    def _to_domain(model: SubscriptionModel) -> Subscription:
        return Subscription(
            id=model.id,
            user_id=model.user_id,
            plan=SubscriptionPlan(model.plan),
            status=SubscriptionStatus(model.status),
            stripe_customer_id=model.stripe_customer_id,
            stripe_subscription_id=model.stripe_subscription_id,
            current_period_end=model.current_period_end,
            cancel_at_period_end=model.cancel_at_period_end,
            canceled_at=model.canceled_at,
            trial_ends_at=model.trial_ends_at,
            access_revoked_at=model.access_revoked_at,
            access_revoke_reason=model.access_revoke_reason,
            audit=audit_of(model),
        )


__all__ = ["SubscriptionRepository"]
