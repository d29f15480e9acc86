"""
Pacscript Field Extractor.

Locates and decodes variable assignments in the shell-like pacscript format
without a general shell grammar. Supported: scalar assignments, array
assignments spanning several lines, per-architecture suffixes
(`source_amd64`), checksum arrays and `name::url` source entries.
"""

import logging
import re
from urllib.parse import urlsplit

from pacscript_updater.core.config import DEFAULT_HASH_TYPES
from pacscript_updater.core.exceptions import MalformedDocumentError
from pacscript_updater.models.pacscript import Field, PackageDocument, SourceEntry, Token

logger = logging.getLogger(__name__)

SKIP_SENTINEL = "SKIP"
URL_DELIMITER = "::"

_ASSIGNMENT_PREFIX = r"^[ \t]*(?:(?:export|local|readonly|declare(?:[ \t]+-\w+)*)[ \t]+)?"
_FUNCTION_RE = re.compile(
    r"^[ \t]*(?:function[ \t]+(?P<kw>[A-Za-z_][\w-]*)[ \t]*(?:\([ \t]*\))?|(?P<name>[A-Za-z_][\w-]*)[ \t]*\([ \t]*\))"
)
_FUNCTION_BODY = {"{": "}", "(": ")"}


# ═══════════════════════════════════════════
# Tokenizer
# ═══════════════════════════════════════════


def _read_word(text: str, i: int, in_array: bool, field: str) -> tuple[str, int]:
    """Decode one shell word starting at `i`; returns (value, end offset)."""
    n = len(text)
    buf: list[str] = []
    while i < n:
        c = text[i]
        if c == "\\":
            if i + 1 >= n:
                buf.append(c)
                i += 1
            elif text[i + 1] == "\n":
                i += 2  # line continuation
            else:
                buf.append(text[i + 1])
                i += 2
        elif c == "'":
            close = text.find("'", i + 1)
            if close == -1:
                raise MalformedDocumentError("unterminated single quote", field=field)
            buf.append(text[i + 1 : close])
            i = close + 1
        elif c == '"':
            i += 1
            while True:
                if i >= n:
                    raise MalformedDocumentError("unterminated double quote", field=field)
                c = text[i]
                if c == '"':
                    i += 1
                    break
                if c == "\\" and i + 1 < n and text[i + 1] in '"\\$`\n':
                    if text[i + 1] != "\n":
                        buf.append(text[i + 1])
                    i += 2
                    continue
                buf.append(c)
                i += 1
        elif c == "$" and text.startswith("$(", i):
            # Command substitution is kept verbatim for the dynamic resolver
            depth = 0
            j = i + 1
            while j < n:
                if text[j] == "(":
                    depth += 1
                elif text[j] == ")":
                    depth -= 1
                    if depth == 0:
                        break
                j += 1
            else:
                raise MalformedDocumentError("unterminated command substitution", field=field)
            buf.append(text[i : j + 1])
            i = j + 1
        elif c in " \t\n;" or (in_array and c == ")"):
            break
        else:
            buf.append(c)
            i += 1
    return "".join(buf), i


def _read_array(doc: PackageDocument, i: int, field: str) -> tuple[list[Token], int]:
    """Tokenize an array body starting right after its opening parenthesis."""
    text = doc.text
    n = len(text)
    tokens: list[Token] = []
    while True:
        while i < n and text[i] in " \t\n":
            i += 1
        if i >= n:
            raise MalformedDocumentError("unterminated array", field=field)
        if text[i] == "#":
            newline = text.find("\n", i)
            i = n if newline == -1 else newline
            continue
        if text[i] == ")":
            return tokens, i + 1
        start = i
        value, i = _read_word(text, i, in_array=True, field=field)
        if i == start:
            raise MalformedDocumentError(f"unexpected {text[i]!r} in array", field=field)
        tokens.append(_token(doc, value, start, i))


def _token(doc: PackageDocument, value: str, start: int, end: int) -> Token:
    line, start_col = doc.position(start)
    end_line, end_col = doc.position(end)
    if end_line != line:
        return Token(value=value, line=line, start=start_col, end=len(doc.lines[line]), single_line=False)
    return Token(value=value, line=line, start=start_col, end=end_col)


# ═══════════════════════════════════════════
# Assignment Lookup
# ═══════════════════════════════════════════


def find_functions(doc: PackageDocument) -> dict[str, tuple[int, int]]:
    """Map each declared shell function to its (first, last) line index."""
    functions: dict[str, tuple[int, int]] = {}
    lines = doc.lines
    index = 0
    while index < len(lines):
        match = _FUNCTION_RE.match(lines[index])
        if not match:
            index += 1
            continue
        name = match.group("kw") or match.group("name")

        # The body opens with `{` or, for a subshell body, `(`, on the header
        # line or the next non-blank one
        start = index
        body = lines[index][match.end() :]
        while not body.strip() and start + 1 < len(lines):
            start += 1
            body = lines[start]
        opener = body.lstrip()[:1]
        if opener not in _FUNCTION_BODY:
            functions[name] = (index, index)
            index += 1
            continue

        closer = _FUNCTION_BODY[opener]
        depth = 0
        end = start
        while end < len(lines):
            depth += body.count(opener) - body.count(closer)
            if depth <= 0:
                break
            end += 1
            body = lines[end] if end < len(lines) else ""
        end = min(end, len(lines) - 1)
        functions[name] = (index, end)
        index = end + 1
    return functions


def _assignment_offsets(name: str, doc: PackageDocument) -> list[int]:
    """Offsets just after `name=` for every top-level assignment of `name`."""
    pattern = re.compile(_ASSIGNMENT_PREFIX + re.escape(name) + "=", re.MULTILINE)
    spans = list(find_functions(doc).values())
    offsets = []
    for match in pattern.finditer(doc.text):
        line, _ = doc.position(match.start())
        if any(first <= line <= last for first, last in spans):
            continue
        offsets.append(match.end())
    return offsets


def iter_scalars(doc: PackageDocument):
    """Yield (name, value) for every top-level scalar assignment, in order."""
    pattern = re.compile(_ASSIGNMENT_PREFIX + r"([A-Za-z_]\w*)=(?!\()", re.MULTILINE)
    spans = list(find_functions(doc).values())
    for match in pattern.finditer(doc.text):
        line, _ = doc.position(match.start())
        if any(first <= line <= last for first, last in spans):
            continue
        value, _ = _read_word(doc.text, match.end(), in_array=False, field=match.group(1))
        yield match.group(1), value


def get_field(name: str, doc: PackageDocument) -> Field | None:
    """Locate the effective (last) assignment of `name`, scalar or array."""
    offsets = _assignment_offsets(name, doc)
    if not offsets:
        return None
    offset = offsets[-1]
    text = doc.text
    if text.startswith("(", offset):
        tokens, _ = _read_array(doc, offset + 1, name)
        return Field(name=name, tokens=tokens, is_array=True)
    value, end = _read_word(text, offset, in_array=False, field=name)
    return Field(name=name, tokens=[_token(doc, value, offset, end)])


def get_scalar_field(name: str, doc: PackageDocument) -> Field | None:
    found = get_field(name, doc)
    if found is None or found.is_array:
        return None
    return found


def get_scalar(name: str, doc: PackageDocument) -> str | None:
    """Return the unquoted value of `name=value`, or None if not assigned."""
    found = get_scalar_field(name, doc)
    return found.tokens[0].value if found else None


def get_array_field(name: str, doc: PackageDocument) -> Field | None:
    found = get_field(name, doc)
    if found is None or not found.is_array:
        return None
    return found


def get_array(name: str, doc: PackageDocument) -> list[str] | None:
    """Return the elements of `name=(...)` in order, or None if not assigned."""
    found = get_array_field(name, doc)
    return found.values if found else None


def get_arch_array_field(base: str, arch: str | None, doc: PackageDocument) -> Field | None:
    if arch:
        qualified = get_array_field(f"{base}_{arch}", doc)
        if qualified is not None:
            return qualified
    return get_array_field(base, doc)


def get_arch_array(base: str, arch: str | None, doc: PackageDocument) -> list[str]:
    """`base_<arch>` falling back to `base`; empty when neither exists."""
    found = get_arch_array_field(base, arch, doc)
    return found.values if found else []


def get_sum_array_field(hashtype: str, arch: str | None, doc: PackageDocument) -> Field | None:
    return get_arch_array_field(f"{hashtype}sums", arch, doc)


def get_sum_array(hashtype: str, arch: str | None, doc: PackageDocument) -> list[str]:
    """`<hashtype>sums_<arch>` falling back to `<hashtype>sums`."""
    return get_arch_array(f"{hashtype}sums", arch, doc)


def get_arches(doc: PackageDocument) -> list[str]:
    return get_array("arch", doc) or []


def declared_arch_qualifiers(doc: PackageDocument, base: str = "source") -> list[str]:
    """Declared arches that have their own `base_<arch>` array."""
    return [arch for arch in get_arches(doc) if get_array_field(f"{base}_{arch}", doc) is not None]


# ═══════════════════════════════════════════
# Sources
# ═══════════════════════════════════════════


def get_url(entry: str) -> tuple[str, str]:
    """
    Split a source entry into (filename, url).

    `name.tar.gz::https://...` names the download explicitly; otherwise the
    last path component of the URL is used.
    """
    if URL_DELIMITER in entry:
        filename, url = entry.split(URL_DELIMITER, 1)
        return filename, url
    path = urlsplit(entry).path.rstrip("/")
    return path.rsplit("/", 1)[-1], entry


def get_sources(
    doc: PackageDocument,
    arch: str | None = None,
    hash_types: tuple[str, ...] = DEFAULT_HASH_TYPES,
    resolve=None,
) -> list[SourceEntry]:
    """
    Bind every source of `arch` to its expected digests.

    `resolve` is applied to each raw entry before it is split, so dynamic
    values and `${pkgver}` references come back as concrete URLs.
    """
    source = get_arch_array_field("source", arch, doc)
    if source is None:
        return []

    sums: dict[str, Field] = {}
    for hashtype in hash_types:
        sum_field = get_sum_array_field(hashtype, arch, doc)
        if sum_field is None:
            continue
        if len(sum_field.tokens) != len(source.tokens):
            raise MalformedDocumentError(
                f"{len(sum_field.tokens)} checksums for {len(source.tokens)} sources in {source.name}",
                field=sum_field.name,
            )
        sums[hashtype] = sum_field

    entries = []
    for index, token in enumerate(source.tokens):
        value = resolve(token.value) if resolve else token.value
        filename, url = get_url(value)
        digests = {}
        for hashtype, sum_field in sums.items():
            digest = sum_field.tokens[index].value
            digests[hashtype] = None if digest == SKIP_SENTINEL else digest
        entries.append(SourceEntry(filename=filename, url=url, sums=digests, index=index, arch=arch))
    logger.debug(f"{len(entries)} sources for {source.name}")
    return entries
