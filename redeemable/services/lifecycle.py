import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from redeemable.schemas.options import RedeemableOptions
from redeemable.services.code_generator import active_code, generate_unique_code
from redeemable.services.expiration import compute_expiration, is_expired, to_utc_naive, utcnow
from redeemable.services.redemption_policy import RedemptionPolicy, policy_for


logger = logging.getLogger(__name__)


class RedeemableLifecycle:
    """Creation-time setup and redemption for one concrete redeemable type.

    The redemption policy is picked once, from ``options.multi_use``, unless
    one is passed in explicitly.
    """

    def __init__(self, options: RedeemableOptions | None = None, policy: RedemptionPolicy | None = None):
        self.options = options or RedeemableOptions()
        self.policy = policy or policy_for(self.options.multi_use)

    # ============================================================
    # CREATION
    # ============================================================

    def generate_unique_code(self, db: Session, model, *, reserved: Iterable[str] = ()) -> str:
        return generate_unique_code(
            lambda code: active_code(db, model, code),
            self.options.code_length,
            max_attempts=self.options.max_code_attempts,
            reserved=reserved,
        )

    def setup_new(
        self,
        db: Session,
        record,
        *,
        now: datetime | None = None,
        reserved: Iterable[str] = (),
    ):
        if not (self.options.allow_custom_code and record.code):
            record.code = self.generate_unique_code(db, type(record), reserved=reserved)

        if record.created_at is None:
            record.created_at = now or utcnow()

        record.expires_on = compute_expiration(
            record.created_at,
            self.options.valid_for,
            record.expires_on,
        )

        logger.debug(
            "redeemable set up",
            extra={
                "model": type(record).__name__,
                "code": record.code,
                "expires_on": (record.expires_on.isoformat() if record.expires_on else None),
            },
        )
        return record

    # ============================================================
    # REDEMPTION
    # ============================================================

    def redeem(self, db: Session | None, record, redeemer_id: int, *, now: datetime | None = None) -> bool:
        now = to_utc_naive(now) or utcnow()

        if not self.policy.redeem(db, record, redeemer_id, now):
            logger.debug(
                "redemption skipped",
                extra={
                    "model": type(record).__name__,
                    "code": record.code,
                    "redeemer_id": redeemer_id,
                    "expired": is_expired(record.expires_on, now),
                },
            )
            return False

        if db is not None:
            db.flush()

        logger.info(
            "redeemable redeemed",
            extra={
                "model": type(record).__name__,
                "code": record.code,
                "redeemer_id": redeemer_id,
                "multi_use": self.policy.multi_use,
            },
        )

        record.after_redeem()
        return True

    def redeemed(self, record) -> bool:
        return self.policy.redeemed(record)

    def redeemed_by(self, db: Session | None, record, user_id: int) -> bool:
        return self.policy.redeemed_by(db, record, user_id)

    def expired(self, record, now: datetime | None = None) -> bool:
        return is_expired(record.expires_on, now)
