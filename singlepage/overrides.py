import copy
import logging
from typing import Any, Dict, Mapping

logger = logging.getLogger(__name__)

PropertyTree = Dict[str, Any]


def merge(generated: Any, override: Any) -> Any:
    """
    Deep merges ``override`` into ``generated`` and returns the result.

    Mappings are merged key by key. Anything else (scalars, lists, or a
    mapping meeting a non-mapping) is replaced by the override's value.
    Neither argument is modified.
    """
    if not isinstance(generated, Mapping) or not isinstance(override, Mapping):
        return copy.deepcopy(override)
    merged = copy.deepcopy(dict(generated))
    for key, value in override.items():
        merged[key] = merge(merged[key], value) if key in merged else copy.deepcopy(value)
    return merged


def apply_extensions(
    resources: Mapping[str, PropertyTree],
    logical_ids: Mapping[str, str],
    extensions: Mapping[str, PropertyTree],
) -> Dict[str, PropertyTree]:
    """
    Merges each role's extension into the whole definition of the resource
    generated for that role, so ``Properties`` as well as attributes like
    ``DeletionPolicy`` can be overridden.
    """
    merged = dict(resources)
    for role, override in extensions.items():
        resource_id = logical_ids[role]
        logger.debug("Applying %s extension to %s", role, resource_id)
        merged[resource_id] = merge(merged[resource_id], override)
    return merged
