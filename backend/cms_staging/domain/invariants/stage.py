from typing import Iterable, List

from cms_staging.domain.exceptions import InvalidStageAncestry, LivePublishError


def normalize_ancestors(stage_id: str, ancestors: Iterable[str], *, live_stage_id: str) -> List[str]:
    """
    Validates an ancestor chain (nearest first) and drops the live sentinel.

    The chain must not revisit a stage nor point back at the stage itself.
    """
    chain = [a for a in ancestors if a and a != live_stage_id]

    if stage_id in chain or len(set(chain)) != len(chain):
        raise InvalidStageAncestry(stage_id, [stage_id, *chain])

    return chain

def assert_publishable(stage_id: str, *, live_stage_id: str) -> None:
    if stage_id == live_stage_id:
        raise LivePublishError(stage_id)
