"""Pseudonymization transforms used by anonymizer script functions.

All transforms are deterministic for a given input, key and table state,
except ``new_uid``, ``current_time`` and ``current_date`` which depend on the clock.
"""

from __future__ import annotations

import base64
import hashlib
import math
import re
import threading
import time
from datetime import date, datetime, timedelta
from typing import Protocol

from cryptography.hazmat.decrepit.ciphers.algorithms import Blowfish
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, modes

from ctp_anonymizer.script.exceptions import ScriptFunctionError, UnparsableNumericArgumentError

_MAX_UID_LENGTH = 64
_KEY_NONCE = "tszyihnnphlyeaglle"
_KEY_PAD = "==="

_DICOM_DATE_RE = re.compile(r"(\d{4})[-./]?(\d{2})[-./]?(\d{2})")
_NAME_NOISE_RE = re.compile(r"[\s,'^.]")


class LookupSource(Protocol):
    def get(self, key: str) -> str | None: ...

    def __len__(self) -> int: ...


class IntegerSource(Protocol):
    def get_integer(self, key_type: str, text: str, width: int) -> str: ...


def md5_hash(string: str | None, maxlen: int | None = None) -> str:
    """MD5 of *string* as an unsigned base-10 digit string, cut to *maxlen*."""
    if string is None:
        string = "null"
    digest = hashlib.md5(string.encode("utf-8")).digest()
    result = str(int.from_bytes(digest, "big"))
    if maxlen is None or maxlen < 1:
        return result
    return result[:maxlen]


def hash_name(string: str, maxlen: int | None = None, word_count: int | None = None) -> str:
    """Hash the first *word_count* components of a ``last^first^middle`` name."""
    words = string.split("^")
    if word_count is not None and word_count > 0:
        words = words[:word_count]
    joined = _NAME_NOISE_RE.sub("", "".join(words)).upper()
    return md5_hash(joined, maxlen)


def hash_ptid(site_id: str | None, ptid: str | None, maxlen: int | None = None) -> str:
    site_id = "" if site_id is None else site_id.strip()
    ptid = "null" if ptid is None else ptid.strip()
    return md5_hash(f"[{site_id}]{ptid}", maxlen)


def _uid_prefix(root: str) -> str:
    root = root.strip()
    if root and not root.endswith("."):
        root += "."
    return root


def hash_uid(root: str, uid: str) -> str:
    """Replacement UID: *root* followed by the hash of *uid*, at most 64 chars."""
    digest = md5_hash(uid)
    extra = "9" if digest.startswith("0") else ""
    return (_uid_prefix(root) + extra + digest)[:_MAX_UID_LENGTH]


class _UidClock:
    """Millisecond clock with a per-millisecond disambiguator."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = -1
        self._counter = 0

    def next(self) -> tuple[int, int]:
        with self._lock:
            now = time.time_ns() // 1_000_000
            if now != self._last:
                self._last = now
                self._counter = 0
            counter = self._counter
            self._counter += 1
            return now, counter


_uid_clock = _UidClock()


def new_uid(root: str) -> str:
    millis, counter = _uid_clock.next()
    return f"{_uid_prefix(root)}{millis}.{counter}"


def round_age(age: str | None, group: int) -> str:
    """Round the number in *age* to a multiple of *group*, keeping its unit suffix.

    ``round_age("27Y", 5)`` gives ``"025Y"``: a leading zero is added when
    the result has an odd length.
    """
    if age is None:
        return ""
    age = age.strip()
    if not age:
        return ""
    if group <= 0:
        raise ScriptFunctionError(f"Group size must be positive, got {group}")
    digits = re.sub(r"\D", "", age)
    if not digits:
        raise UnparsableNumericArgumentError(f"Age does not parse: {age!r}")
    rounded = math.floor(float(digits) / group + 0.5) * group
    result = f"{rounded}" + re.sub(r"\d", "", age)
    if len(result) % 2:
        result = "0" + result
    return result


def _encryption_key(key_text: str | None, size: int = 128) -> bytes:
    key_text = re.sub(r"[^a-zA-Z0-9+/]", "", (key_text or "").strip())
    required_chars = (size + 5) // 6
    group_chars = 4 * ((required_chars + 3) // 4)
    while len(key_text) < required_chars:
        key_text += _KEY_NONCE
    key_text = (key_text[:required_chars] + _KEY_PAD)[:group_chars]
    return base64.b64decode(key_text)


def encrypt(string: str | None, key_text: str) -> str:
    """Blowfish-encrypt *string* with a key derived from *key_text*; base64 output."""
    if string is None:
        string = "null"
    padder = padding.PKCS7(Blowfish.block_size).padder()
    data = padder.update(string.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(Blowfish(_encryption_key(key_text)), modes.ECB()).encryptor()
    encrypted = encryptor.update(data) + encryptor.finalize()
    return base64.b64encode(encrypted).decode("ascii")


def _parse_date(value: str) -> tuple[date, str]:
    match = _DICOM_DATE_RE.match(value.strip())
    if match is None:
        raise ScriptFunctionError(f"Not a date: {value!r}")
    year, month, day = (int(group) for group in match.groups())
    try:
        parsed = date(year, month, day)
    except ValueError as exc:
        raise ScriptFunctionError(f"Not a date: {value!r}") from exc
    return parsed, value.strip()[match.end() :]


def increment_date(value: str, days: int) -> str:
    """Shift a DICOM date by *days*, keeping anything after the date."""
    parsed, suffix = _parse_date(value)
    try:
        shifted = parsed + timedelta(days=days)
    except OverflowError as exc:
        raise ScriptFunctionError(f"Date out of range: {value!r} + {days} days") from exc
    return shifted.strftime("%Y%m%d") + suffix


def modify_date(value: str, year: int, month: int, day: int) -> str:
    """Replace date fields; a negative field keeps the original value.

    Out of range months and days roll over into the following year or month.
    """
    parsed, suffix = _parse_date(value)
    year = parsed.year if year < 0 else year
    month = parsed.month if month < 0 else month
    day = parsed.day if day < 0 else day
    carry, month_index = divmod(month - 1, 12)
    try:
        modified = date(year + carry, month_index + 1, 1) + timedelta(days=day - 1)
    except (ValueError, OverflowError) as exc:
        raise ScriptFunctionError(f"Cannot modify date {value!r}: {exc}") from exc
    return modified.strftime("%Y%m%d") + suffix


def initials(name: str | None) -> str:
    """Initials of a ``last^first^middle`` name with the last name moved to the end."""
    if name is None:
        return "X"
    words = name.replace("^", " ").split()
    if not words:
        return "X"
    letters = "".join(word[0] for word in words)
    if len(letters) > 1:
        letters = letters[1:] + letters[0]
    return letters.upper()


def current_time(separator: str = "") -> str:
    now = datetime.now()
    return separator.join(f"{field:02d}" for field in (now.hour, now.minute, now.second))


def current_date(separator: str = "") -> str:
    now = datetime.now()
    return separator.join((f"{now.year:04d}", f"{now.month:02d}", f"{now.day:02d}"))


def lookup(table: LookupSource | None, key_type: str, key: str | None) -> str:
    """Value stored under ``key_type/key``."""
    if table is None:
        raise ScriptFunctionError("missing lookup table")
    if len(table) == 0:
        raise ScriptFunctionError("empty lookup table")
    if key is None:
        raise ScriptFunctionError("lookup key missing")
    full_key = f"{key_type.strip()}/{key.strip()}"
    value = table.get(full_key)
    if value is None:
        raise ScriptFunctionError(f"missing key ({full_key}) in lookup table")
    return value.strip()


def integer(table: IntegerSource | None, key_type: str, text: str | None, width: int) -> str:
    """Sequential integer replacement for *text*, zero-padded to *width*."""
    if table is None:
        raise ScriptFunctionError("missing integer table")
    if text is None:
        raise ScriptFunctionError("lookup key missing")
    return table.get_integer(key_type, text, width)
