from datetime import datetime

from sqlalchemy import inspect
from sqlalchemy.orm import Session, with_parent

from redeemable.exceptions import RedeemableConfigurationError, UnsupportedRedemptionQuery
from redeemable.services.expiration import is_expired


class RedemptionPolicy:
    """How a redeemable is consumed and how its redeemed state is queried.

    ``redeem`` returns True when it changed the record and False when the
    attempt was a no-op (expired, or a terminal state for the policy).
    It never flushes and never runs hooks; that is the lifecycle's job.
    """

    multi_use = False

    def redeem(self, db: Session | None, record, redeemer_id: int, now: datetime) -> bool:
        raise NotImplementedError

    def redeemed(self, record) -> bool:
        raise NotImplementedError

    def redeemed_by(self, db: Session | None, record, user_id: int) -> bool:
        raise UnsupportedRedemptionQuery(
            f"{type(self).__name__} does not track redemptions per redeemer"
        )


# ============================================================
# SINGLE USE
# ============================================================

class SingleUsePolicy(RedemptionPolicy):
    # Unredeemed -> Redeemed, no way back

    def redeem(self, db, record, redeemer_id, now):
        if self.redeemed(record) or is_expired(record.expires_on, now):
            return False

        record.redeemed_by_id = redeemer_id
        record.redeemed_at = now
        return True

    def redeemed(self, record) -> bool:
        return record.redeemed_at is not None


# ============================================================
# MULTI USE
# ============================================================

def redemption_model_for(record):
    """Mapped class behind the ``redemptions`` relationship of ``record``."""
    relationships = inspect(type(record)).relationships
    if "redemptions" not in relationships:
        raise RedeemableConfigurationError(
            f"{type(record).__name__} is multi-use but declares no 'redemptions' relationship"
        )
    return relationships["redemptions"].mapper.class_


class MultiUsePolicy(RedemptionPolicy):
    multi_use = True

    def redeem(self, db, record, redeemer_id, now):
        if is_expired(record.expires_on, now):
            return False

        # repeated redemptions by one redeemer are allowed
        model = redemption_model_for(record)
        record.redemptions.append(model(user_id=redeemer_id, created_at=now))
        return True

    def redeemed(self, record) -> bool:
        count = record.redemptions_count
        if count is None:
            # not inserted yet; the counter starts at the first flush
            return len(record.redemptions) > 0
        return count > 0

    def redeemed_by(self, db, record, user_id):
        if db is None or not inspect(record).persistent:
            return any(r.user_id == user_id for r in record.redemptions)

        model = redemption_model_for(record)
        existing = (
            db.query(model.id)
            .filter(with_parent(record, type(record).redemptions))
            .filter(model.user_id == user_id)
            .first()
        )
        return existing is not None


def policy_for(multi_use: bool) -> RedemptionPolicy:
    return MultiUsePolicy() if multi_use else SingleUsePolicy()
