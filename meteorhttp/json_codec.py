'''
**meteorhttp.json_codec**
-----------------

JSON encoding and decoding shared by the request builder. Dates are written
as ISO 8601 UTC timestamps with millisecond precision (`2024-05-01T12:30:00.250Z`)
and read back from any ISO 8601 form the auth services return, including the
7 digit fractions Xbox Live puts on its token expiry times.

Decoded JSON can be structured into a target type: dataclasses, `list[X]`,
`dict[str, X]`, optionals, `datetime` and the JSON primitives.
'''
import dataclasses as dc
import json
import re
import types
import typing
from datetime import datetime, timezone
from typing import Any, TypeVar, Union

T = TypeVar('T')

_FRACTION = re.compile(r'(\.\d{6})\d+')


class JSONDecodeFailure(ValueError):
    '''
    Raised when a JSON document cannot be parsed or does not fit the
    requested target type.

    Parent: ValueError
    '''


def format_date(value: datetime) -> str:
    '''
    Format a datetime in the shared wire format, naive values are
    taken to be UTC.

    Parameters
    ----------
    value : datetime

    Returns
    -------
    str
    '''
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    stamp = value.astimezone(timezone.utc).isoformat(timespec='milliseconds')
    return stamp.replace('+00:00', 'Z')


def parse_date(text: str) -> datetime:
    '''
    Parse an ISO 8601 timestamp into an aware datetime.

    Parameters
    ----------
    text : str

    Returns
    -------
    datetime

    Raises
    ------
    JSONDecodeFailure
        If the value is not a string or not an ISO 8601 timestamp.
    '''
    if not isinstance(text, str):
        raise JSONDecodeFailure(f'Expected a date string, got {type(text).__name__}')

    normalized = _FRACTION.sub(r'\1', text.strip())
    if normalized.endswith(('Z', 'z')):
        normalized = normalized[:-1] + '+00:00'

    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise JSONDecodeFailure(f'Invalid date {text!r}: {exc}') from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return format_date(obj)
    if dc.is_dataclass(obj) and not isinstance(obj, type):
        return {field.name: getattr(obj, field.name) for field in dc.fields(obj)}
    raise TypeError(f'Object of type {type(obj).__name__} is not JSON serializable')


def dumps(obj: Any) -> str:
    '''
    Serialize `obj` to compact JSON text, dataclasses become objects
    of their fields and datetimes use `format_date`.
    '''
    return json.dumps(obj, default=_default, separators=(',', ':'))


def _structure_dataclass(data: Any, target: type) -> Any:
    if not isinstance(data, dict):
        raise JSONDecodeFailure(
            f'Expected an object for {target.__name__}, got {type(data).__name__}'
        )

    hints = typing.get_type_hints(target)
    kwargs = {}
    for field in dc.fields(target):
        if not field.init:
            continue
        if field.name in data:
            kwargs[field.name] = structure(data[field.name], hints.get(field.name, Any))
        elif field.default is dc.MISSING and field.default_factory is dc.MISSING:
            raise JSONDecodeFailure(
                f'Missing required key {field.name!r} for {target.__name__}'
            )

    return target(**kwargs)


def _structure_union(data: Any, args: tuple) -> Any:
    if data is None and type(None) in args:
        return None

    error: JSONDecodeFailure | None = None
    for arg in args:
        if arg is type(None):
            continue
        try:
            return structure(data, arg)
        except JSONDecodeFailure as exc:
            error = exc

    raise error or JSONDecodeFailure(f'No union member matched {data!r}')


def structure(data: Any, target: Any = None) -> Any:
    '''
    Convert decoded JSON data into an instance of `target`.

    Parameters
    ----------
    data : Any
        The output of `json.loads`
    target : Any, optional
        The type to build, by default None (data returned unchanged)

    Returns
    -------
    Any

    Raises
    ------
    JSONDecodeFailure
        If the data does not fit the target type.
    '''
    if target is None or target is Any:
        return data

    origin = typing.get_origin(target)
    args = typing.get_args(target)

    if origin in (Union, types.UnionType):
        return _structure_union(data, args)

    if origin is list:
        if not isinstance(data, list):
            raise JSONDecodeFailure(f'Expected an array, got {type(data).__name__}')
        item_type = args[0] if args else Any
        return [structure(item, item_type) for item in data]

    if origin is dict:
        if not isinstance(data, dict):
            raise JSONDecodeFailure(f'Expected an object, got {type(data).__name__}')
        value_type = args[1] if len(args) == 2 else Any
        return {key: structure(value, value_type) for key, value in data.items()}

    if target is datetime:
        return parse_date(data)

    if dc.is_dataclass(target):
        return _structure_dataclass(data, target)

    if target is float and isinstance(data, int) and not isinstance(data, bool):
        return float(data)

    if target is int and isinstance(data, bool):
        raise JSONDecodeFailure('Expected int, got bool')

    if isinstance(target, type) and not isinstance(data, target):
        raise JSONDecodeFailure(
            f'Expected {target.__name__}, got {type(data).__name__}'
        )

    return data


@typing.overload
def loads(text: str | bytes) -> Any: ...
@typing.overload
def loads(text: str | bytes, target: type[T]) -> T: ...
def loads(text, target=None):
    '''
    Parse JSON text and structure it into `target`.

    Raises
    ------
    JSONDecodeFailure
        If the text is not valid JSON or does not fit `target`.
    '''
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise JSONDecodeFailure(f'Invalid JSON: {str(exc)[:100]}') from exc

    return structure(data, target)
