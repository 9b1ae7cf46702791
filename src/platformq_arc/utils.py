"""
Utility functions shared by the Arc access services.
"""

import inspect
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from eth_utils import is_address, to_checksum_address

from .types import InvalidArgumentError


def normalize_address(address: str) -> str:
    """Checksum an EVM address; other identifiers are returned unchanged"""
    if is_address(address):
        return to_checksum_address(address)
    return address


def require(value: Any, name: str) -> None:
    """Raise InvalidArgumentError when a required identifier is missing"""
    if value is None or value == "":
        raise InvalidArgumentError(f"{name} is not defined")


def validate_choice(choice: Any) -> None:
    """A vote choice must be an integer >= 0"""
    if isinstance(choice, bool) or not isinstance(choice, int) or choice < 0:
        raise InvalidArgumentError("vote must be an integer greater than or equal to zero")


def merge_arg_filters(arg_filter: Optional[Mapping[str, Any]],
                      base_arg_filter: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Merge a caller argument filter with a base filter.

    Base keys always take precedence; the caller can only add keys.
    """
    merged = dict(arg_filter or {})
    merged.update(base_arg_filter or {})
    return merged


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it as-is"""
    if inspect.isawaitable(value):
        return await value
    return value


def is_topic_specified_by(subscribed: Union[str, Iterable[str]], published: str) -> bool:
    """
    Return True if a subscription to ``subscribed`` covers ``published``.

    A topic matches itself, any dot-separated descendant, and ``*`` matches
    everything. Empty topics never match.
    """
    if isinstance(subscribed, str):
        subscribed = [subscribed]
    if not published:
        return False
    for topic in subscribed:
        if not topic:
            continue
        if topic == "*" or topic == published or published.startswith(topic + "."):
            return True
    return False
