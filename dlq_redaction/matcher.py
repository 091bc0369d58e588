"""
Path matcher: resolve JSONPath expressions to concrete JSON pointers.

Expressions are parsed with jsonpath-ng's extended grammar and the
resulting tree is evaluated here, carrying the pointer segments along with
each matched value. Evaluation is strict about container types (field
steps only apply to objects, index steps only to arrays), so heterogeneous
documents simply produce fewer matches instead of errors.

Supported forms include:
    $                       the root
    $.customer.email        dotted field access
    $['odd/key']            bracket field access
    $.items[*].secret       wildcard over array elements (or object members)
    $.customer.*            wildcard over object members (or array elements)
    $..email                recursive descent
    $.items[0], $.items[-1] array indexing
    $.items[1:3]            array slices
    $.a | $.b               unions
    $.items[?(@.kind == 'card')].number   filters
"""

import logging
from functools import lru_cache
from typing import Any, Iterator

from jsonpath_ng import jsonpath as jp
from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as jsonpath_parse
from jsonpath_ng.ext.filter import Filter

from .errors import PathSyntaxError
from .pointer import Segment, build_pointer

logger = logging.getLogger(__name__)

Match = tuple[list[Segment], Any]


@lru_cache(maxsize=256)
def compile_path(expression: str) -> jp.JSONPath:
    """
    Parse a path expression, raising PathSyntaxError if it is malformed.

    Results are cached; compiled expressions are immutable.
    """
    if expression is None or not expression.strip():
        raise PathSyntaxError(expression or "", "expression is empty")
    try:
        return jsonpath_parse(expression)
    except JSONPathError as e:
        raise PathSyntaxError(expression, str(e)) from None
    except (TypeError, ValueError, AttributeError) as e:
        # The extended grammar surfaces some bad literals as plain errors.
        raise PathSyntaxError(expression, str(e) or type(e).__name__) from None


def _indices(node: jp.Index) -> list[int]:
    # jsonpath-ng >= 1.6 stores a tuple of indices, older releases a scalar.
    indices = getattr(node, "indices", None)
    if indices is not None:
        return list(indices)
    return [node.index]


def _children(segments: list[Segment], value: Any) -> Iterator[Match]:
    if isinstance(value, dict):
        for key, child in value.items():
            yield segments + [key], child
    elif isinstance(value, list):
        for index, child in enumerate(value):
            yield segments + [index], child


def _descendants(segments: list[Segment], value: Any) -> Iterator[Match]:
    """The node itself, then every node below it, depth first."""
    yield segments, value
    for child_segments, child in _children(segments, value):
        yield from _descendants(child_segments, child)


def _is_wildcard_slice(node: jp.Slice) -> bool:
    return node.start is None and node.end is None and node.step is None


def _filter_accepts(node: Filter, item: Any) -> bool:
    try:
        return all(expression.find(item) for expression in node.expressions)
    except (TypeError, ValueError, AttributeError, KeyError):
        return False


def _evaluate(node: jp.JSONPath, root: Any, matches: list[Match], expression: str) -> list[Match]:
    if isinstance(node, jp.Root):
        return [([], root)]
    if isinstance(node, jp.This):
        return matches
    if isinstance(node, jp.Child):
        return _evaluate(node.right, root, _evaluate(node.left, root, matches, expression), expression)
    if isinstance(node, jp.Union):
        return (_evaluate(node.left, root, matches, expression)
                + _evaluate(node.right, root, matches, expression))
    if isinstance(node, jp.Descendants):
        results: list[Match] = []
        for segments, value in _evaluate(node.left, root, matches, expression):
            for descendant in _descendants(segments, value):
                results.extend(_evaluate(node.right, root, [descendant], expression))
        return results

    if not isinstance(node, (jp.Fields, jp.Index, jp.Slice, Filter)):
        raise PathSyntaxError(expression, f"unsupported path construct: {node}")

    results = []
    for segments, value in matches:
        if isinstance(node, jp.Fields):
            if "*" in node.fields:
                results.extend(_children(segments, value))
            elif isinstance(value, dict):
                results.extend((segments + [name], value[name]) for name in node.fields if name in value)
        elif isinstance(node, jp.Index):
            if isinstance(value, list):
                for index in _indices(node):
                    if index < 0:
                        index += len(value)
                    if 0 <= index < len(value):
                        results.append((segments + [index], value[index]))
        elif isinstance(node, jp.Slice):
            if _is_wildcard_slice(node):
                results.extend(_children(segments, value))
            elif isinstance(value, list):
                for index in range(len(value))[slice(node.start, node.end, node.step)]:
                    results.append((segments + [index], value[index]))
        elif isinstance(node, Filter):
            if isinstance(value, list):
                results.extend(
                    (segments + [index], item)
                    for index, item in enumerate(value)
                    if _filter_accepts(node, item)
                )
    return results


def resolve(root: Any, expression: str) -> list[str]:
    """
    Resolve expression against root.

    Args:
        root: Any JSON-compatible value.
        expression: A JSONPath expression.

    Returns:
        Pointers to every existing location the expression matches, in
        document order (depth first, array indices ascending) without
        duplicates. No match is an empty list.

    Raises:
        PathSyntaxError: The expression is malformed or uses a construct
                         that cannot address a location (e.g. len()).
    """
    compiled = compile_path(expression)
    pointers: list[str] = []
    seen: set[str] = set()
    for segments, _ in _evaluate(compiled, root, [([], root)], expression):
        pointer = build_pointer(segments)
        if pointer not in seen:
            seen.add(pointer)
            pointers.append(pointer)
    logger.debug(f"Resolved {expression!r} to {len(pointers)} pointer(s)")
    return pointers
