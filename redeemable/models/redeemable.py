import logging

from sqlalchemy import Column, Integer, String, TIMESTAMP, event, inspect, update
from sqlalchemy.orm import Session, object_session

from redeemable.exceptions import DetachedRedeemableError, RedeemableConfigurationError
from redeemable.schemas.options import MAX_CODE_LENGTH, RedeemableOptions
from redeemable.services.code_generator import active_code, generate_code
from redeemable.services.expiration import utcnow
from redeemable.services.identifiers import resolve_identifier
from redeemable.services.lifecycle import RedeemableLifecycle


logger = logging.getLogger(__name__)


class RedeemableMixin:
    """Code, expiration and redemption behavior for a declarative model.

    Use one of the concrete mixins, and configure the type with::

        class Coupon(SingleUseRedeemableMixin, Base):
            __tablename__ = "coupons"
            __redeemable__ = RedeemableOptions(valid_for=timedelta(days=30), code_length=8)

            id = Column(Integer, primary_key=True)

    The concrete class owns its primary key. Codes are unique per table.
    """

    __redeemable__ = None
    _multi_use = False

    code = Column(String(MAX_CODE_LENGTH), nullable=False, unique=True, index=True)

    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    expires_on = Column(TIMESTAMP, nullable=True)

    @classmethod
    def redeemable_lifecycle(cls) -> RedeemableLifecycle:
        lifecycle = cls.__dict__.get("_redeemable_lifecycle")
        if lifecycle is not None:
            return lifecycle

        options = cls.__redeemable__ or RedeemableOptions()
        if options.multi_use != cls._multi_use:
            if "multi_use" in options.model_fields_set:
                raise RedeemableConfigurationError(
                    f"{cls.__name__}: multi_use={options.multi_use} does not match its redeemable mixin"
                )
            options = options.model_copy(update={"multi_use": cls._multi_use})

        lifecycle = RedeemableLifecycle(options)
        cls._redeemable_lifecycle = lifecycle
        return lifecycle

    @classmethod
    def generate_code(cls) -> str:
        return generate_code(cls.redeemable_lifecycle().options.code_length)

    @classmethod
    def generate_unique_code(cls, db) -> str:
        return cls.redeemable_lifecycle().generate_unique_code(db, cls)

    @classmethod
    def active_code(cls, db, code: str) -> bool:
        return active_code(db, cls, code)

    def _session(self):
        db = object_session(self)
        if db is None:
            raise DetachedRedeemableError(f"{type(self).__name__} is not attached to a session")
        return db

    def redeem(self, redeemer, *, now=None) -> bool:
        """Redeem for ``redeemer`` (an id or an entity with an ``id``).

        Returns False, without touching the record, when the redeemable is
        expired or can no longer be redeemed.
        """
        redeemer_id = resolve_identifier(redeemer)
        return type(self).redeemable_lifecycle().redeem(self._session(), self, redeemer_id, now=now)

    def redeemed(self) -> bool:
        return type(self).redeemable_lifecycle().redeemed(self)

    def expired(self, now=None) -> bool:
        return type(self).redeemable_lifecycle().expired(self, now)

    def after_redeem(self):
        """Hook for business logic, called after each successful redemption."""
        pass


class SingleUseRedeemableMixin(RedeemableMixin):
    redeemed_by_id = Column(Integer, nullable=True, index=True)
    redeemed_at = Column(TIMESTAMP, nullable=True)


class MultiUseRedeemableMixin(RedeemableMixin):
    """Redeemable by any number of redeemers, each as often as they like.

    The concrete class declares ``redemptions``, a one-to-many relationship
    to a model built on ``RedemptionMixin``. ``redemptions_count`` is kept in
    SQL as rows of that model are inserted and deleted.
    """

    _multi_use = True

    redemptions_count = Column(Integer, nullable=False, default=0)

    def redeemed_by(self, user) -> bool:
        user_id = resolve_identifier(user)
        db = object_session(self)
        if db is None and inspect(self).detached:
            raise DetachedRedeemableError(f"{type(self).__name__} is not attached to a session")
        return type(self).redeemable_lifecycle().redeemed_by(db, self, user_id)


class RedemptionMixin:
    id = Column(Integer, primary_key=True)

    user_id = Column(Integer, nullable=False, index=True)

    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


def is_redeemable(cls) -> bool:
    return isinstance(cls, type) and issubclass(cls, RedeemableMixin)


# ============================================================
# PERSISTENCE HOOKS
# ============================================================

# session.info key for redeemables whose counter changed in SQL during a flush
_RECOUNTED = "redeemable_recounted"


def _counter_listener(parent_mapper, parent_key_column, child_mapper, child_key_column, delta):
    table = parent_mapper.local_table
    counter = table.c.redemptions_count
    parent_attr = parent_mapper.get_property_by_column(parent_key_column).key
    child_attr = child_mapper.get_property_by_column(child_key_column).key

    def listener(mapper, connection, target):
        parent_id = getattr(target, child_attr)
        if parent_id is None:
            return

        # atomic in SQL, so concurrent sessions cannot lose increments
        connection.execute(
            update(table)
            .where(parent_key_column == parent_id)
            .values({counter: counter + delta})
        )

        db = object_session(target)
        if db is not None:
            db.info.setdefault(_RECOUNTED, set()).add((parent_mapper.class_, parent_attr, parent_id))

    return listener


@event.listens_for(MultiUseRedeemableMixin, "mapper_configured", propagate=True)
def _install_redemption_counter(mapper, class_):
    if "redemptions" not in mapper.relationships:
        logger.warning("multi-use redeemable without redemptions relationship", extra={"model": class_.__name__})
        return

    relationship = mapper.relationships["redemptions"]
    parent_key_column, child_key_column = relationship.local_remote_pairs[0]
    child_mapper = relationship.mapper

    for identifier, delta in (("after_insert", 1), ("after_delete", -1)):
        event.listen(
            child_mapper,
            identifier,
            _counter_listener(mapper, parent_key_column, child_mapper, child_key_column, delta),
        )


@event.listens_for(Session, "after_flush_postexec")
def _refresh_recounted(session, flush_context):
    recounted = session.info.pop(_RECOUNTED, None)
    if not recounted:
        return

    for record in list(session.identity_map.values()):
        for cls, attr, parent_id in recounted:
            if isinstance(record, cls) and getattr(record, attr) == parent_id:
                # reloaded from the row on next access
                session.expire(record, ["redemptions_count"])


@event.listens_for(Session, "before_flush")
def _setup_new_redeemables(session, flush_context, instances):
    records = [obj for obj in session.new if isinstance(obj, RedeemableMixin)]
    if not records:
        return

    # codes already claimed within this flush, per concrete type
    reserved: dict[type, set[str]] = {}
    for record in records:
        cls = type(record)
        if cls.redeemable_lifecycle().options.allow_custom_code and record.code:
            reserved.setdefault(cls, set()).add(record.code)

    for record in records:
        cls = type(record)
        taken = reserved.setdefault(cls, set())
        cls.redeemable_lifecycle().setup_new(session, record, reserved=taken)
        taken.add(record.code)
