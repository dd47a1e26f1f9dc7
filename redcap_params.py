#!/usr/bin/env python3
"""
Form-body encoding for the REDCap API

REDCap takes list parameters as indexed keys (dags[0]=..., dags[1]=...).
The indexed entries are joined without a separator, which is what existing
REDCap integrations send and must stay byte-compatible.
"""

from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import quote


class BuilderKind(str, Enum):
    ARMS = 'arms'
    DAGS = 'dags'
    EVENTS = 'events'
    USERS = 'users'
    USER_ROLES = 'userRoles'
    RECORDS = 'records'
    GENERIC = 'generic'


# Key prefix written in front of each [i] index
_PREFIXES = {
    BuilderKind.ARMS: 'arms',
    BuilderKind.DAGS: 'dags',
    BuilderKind.EVENTS: 'events',
    BuilderKind.USERS: 'users',
    BuilderKind.USER_ROLES: 'roles',
    BuilderKind.RECORDS: 'records',
    BuilderKind.GENERIC: '',
}


def encode_value(value) -> str:
    """Percent-encode a single form value (booleans become REDCap's true/false)"""
    if isinstance(value, bool):
        value = 'true' if value else 'false'
    return quote(str(value), safe='')


def encode_indexed(values: Sequence[str], kind) -> str:
    """
    Build the indexed-array fragment for a list parameter

    Args:
        values: Ordered values; position in the sequence becomes the index
        kind: BuilderKind (or its string value) selecting the key prefix

    Returns:
        e.g. 'dags[0]=g1dags[1]=g2' for kind=dags, '' for no values
    """
    prefix = _PREFIXES[BuilderKind(kind)]
    return ''.join(f'{prefix}[{i}]={encode_value(v)}' for i, v in enumerate(values))


def build_body(token: str,
               content: str,
               action: Optional[str] = None,
               format_key: Optional[str] = None,
               response_format: Optional[str] = None,
               params: Iterable[Tuple[str, object]] = (),
               indexed: str = '') -> str:
    """
    Assemble the full form body for one API call

    Order is token, content, action, format, scalar params, then the
    indexed fragment. Params with a None value are left out; empty strings
    are kept as 'key='.
    """
    parts: List[str] = [f'token={encode_value(token)}', f'content={content}']
    if action:
        parts.append(f'action={action}')
    if format_key and response_format:
        parts.append(f'{format_key}={encode_value(response_format)}')
    for key, value in params:
        if value is None:
            continue
        parts.append(f'{key}={encode_value(value)}')
    if indexed:
        parts.append(indexed)
    return '&'.join(parts)
