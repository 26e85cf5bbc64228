"""Error types raised by the staging core."""

from __future__ import annotations


class StagingError(Exception):
    """Base error for the staging core."""

    status_code = 400


class LivePublishError(StagingError):
    """Raised when the live stage is asked to publish into itself."""

    def __init__(self, stage_id: str) -> None:
        self.stage_id = stage_id
        super().__init__(f"Cannot publish '{stage_id}' stage to itself")


class StageNotFound(StagingError):
    status_code = 404

    def __init__(self, stage_id: str) -> None:
        self.stage_id = stage_id
        super().__init__(f"Stage '{stage_id}' not found")


class InvalidStageAncestry(StagingError):
    """Raised when an ancestry chain contains a cycle or a self reference."""

    def __init__(self, stage_id: str, ancestry: list[str]) -> None:
        self.stage_id = stage_id
        self.ancestry = list(ancestry)
        super().__init__(
            f"Invalid ancestry for stage '{stage_id}': {' -> '.join(ancestry)}"
        )


class UnknownEntityType(StagingError):
    def __init__(self, entity_type: str) -> None:
        self.entity_type = entity_type
        super().__init__(f"Unknown config entity type: {entity_type}")


class RevisionDecodeError(StagingError):
    """
    Raised when a staged revision payload cannot be decoded.

    Never treated as "entity absent": an undecodable revision means the
    staged data is damaged and the caller must see it.
    """

    status_code = 500

    def __init__(self, stage_id: str, entity_type: str, entity_id: str, detail: str) -> None:
        self.stage_id = stage_id
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.detail = detail
        super().__init__(
            f"Failed to decode staged revision {entity_type}:{entity_id} "
            f"in stage '{stage_id}': {detail}"
        )


class IllegalPublishTransition(StagingError):
    status_code = 409

    def __init__(self, from_state: str, to_state: str) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Illegal publish transition: {from_state} → {to_state}")
