import hashlib
import re
from typing import Sequence

LOGICAL_ID_HASH_LENGTH = 8
MAX_HUMAN_ID_LENGTH = 240
NAME_HASH_LENGTH = 6

# hidden from the human readable part of an id, but still part of its hash
HIDDEN_FROM_HUMAN_ID = "Resource"

FUNCTION_NAME_MAX_LENGTH = 64
CACHE_POLICY_NAME_MAX_LENGTH = 128


def camel_case(name: str) -> str:
    head, *tail = re.split(r"[^A-Za-z0-9]+", name)
    return head + "".join(part[:1].upper() + part[1:] for part in tail)


def remove_non_alphanumeric(component: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", component)


def path_hash(path: Sequence[str]) -> str:
    digest = hashlib.md5("/".join(path).encode("utf-8")).hexdigest()
    return digest[:LOGICAL_ID_HASH_LENGTH].upper()


def unique_id(path: Sequence[str]) -> str:
    """
    Builds a template-unique id out of a construct path such as
    ``["landing", "Bucket", "Resource"]``.

    The readable prefix is only for humans; the hash of the full raw path is
    what keeps two paths apart once non-alphanumerics have been stripped.
    """
    if not path or not path[0]:
        raise ValueError("Cannot derive an id from an empty path")
    human = camel_case(path[0]) + "".join(
        remove_non_alphanumeric(component)
        for component in path[1:]
        if component != HIDDEN_FROM_HUMAN_ID
    )
    return human[:MAX_HUMAN_ID_LENGTH] + path_hash(path)


def logical_id(construct_name: str, *roles: str) -> str:
    return unique_id([construct_name, *roles, HIDDEN_FROM_HUMAN_ID])


def origin_id(construct_name: str, token: str, position: int) -> str:
    return unique_id([construct_name, token, f"Origin{position}"])


def output_id(construct_name: str, name: str) -> str:
    return unique_id([construct_name, name])


def ensure_name_max_length(name: str, max_length: int) -> str:
    """
    Cuts ``name`` down to exactly ``max_length`` characters when it is too long,
    appending a short hash of the untruncated name so distinct names sharing a
    prefix still come out distinct.
    """
    if len(name) <= max_length:
        return name
    suffix = hashlib.md5(name.encode("utf-8")).hexdigest()[:NAME_HASH_LENGTH]
    return f"{name[:max_length - len(suffix) - 1]}-{suffix}"


def physical_name(
    stage_prefix: str,
    region: str,
    construct_name: str,
    suffix: str,
    max_length: int = FUNCTION_NAME_MAX_LENGTH,
) -> str:
    return ensure_name_max_length(
        "-".join((stage_prefix, region, construct_name, suffix)), max_length
    )
