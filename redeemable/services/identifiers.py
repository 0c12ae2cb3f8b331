def resolve_identifier(value) -> int:
    """Integer id of a redeemer given either the id itself or an entity.

    Entities are anything exposing an ``id`` attribute (mapped instances
    included). Everything else goes through ``int()``, so ``"42"`` works and
    ``"abc"`` raises ``ValueError``.
    """
    if value is None or isinstance(value, bool):
        raise TypeError(f"cannot resolve an identifier from {value!r}")
    if isinstance(value, int):
        return value
    if not isinstance(value, (str, bytes, float)) and hasattr(value, "id"):
        if value.id is None:
            raise ValueError(f"{type(value).__name__} has no id yet")
        return int(value.id)
    return int(value)
