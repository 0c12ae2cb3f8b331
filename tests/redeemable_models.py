from datetime import timedelta

from sqlalchemy import Column, ForeignKey, Integer
from sqlalchemy.orm import relationship

from redeemable.db import Base
from redeemable.models.redeemable import (
    MultiUseRedeemableMixin,
    RedemptionMixin,
    SingleUseRedeemableMixin,
)
from redeemable.schemas.options import RedeemableOptions


class HookCounterMixin:
    def after_redeem(self):
        self.after_redeem_calls = getattr(self, "after_redeem_calls", 0) + 1


class Coupon(HookCounterMixin, SingleUseRedeemableMixin, Base):
    __tablename__ = "coupons"
    __redeemable__ = RedeemableOptions(valid_for=timedelta(days=30), code_length=8)

    id = Column(Integer, primary_key=True)

    # creator of the coupon
    user_id = Column(Integer, nullable=True)


class Voucher(HookCounterMixin, SingleUseRedeemableMixin, Base):
    __tablename__ = "vouchers"
    __redeemable__ = RedeemableOptions(allow_custom_code=True)

    id = Column(Integer, primary_key=True)


class Invitation(HookCounterMixin, MultiUseRedeemableMixin, Base):
    __tablename__ = "invitations"
    __redeemable__ = RedeemableOptions(valid_for=timedelta(days=7))

    id = Column(Integer, primary_key=True)

    redemptions = relationship(
        "InvitationRedemption",
        back_populates="invitation",
        order_by="InvitationRedemption.id",
        cascade="all, delete-orphan",
    )


class InvitationRedemption(RedemptionMixin, Base):
    __tablename__ = "invitation_redemptions"

    invitation_id = Column(Integer, ForeignKey("invitations.id"), nullable=False, index=True)

    invitation = relationship("Invitation", back_populates="redemptions")
