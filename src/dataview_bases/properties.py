"""
Static name tables shared by the parser and the transformer.

Dataview and Bases disagree on a handful of implicit file properties and on
function spelling; everything else passes through untouched.
"""

from dataview_bases.ast import Duration

# Dataview file property -> Bases file property
PROPERTY_MAP = {
    "file.ext": "file.extension",
    "file.cday": "file.ctime",
    "file.mday": "file.mtime",
    "file.outlinks": "file.links",
    "file.inlinks": "file.backlinks",
}

# Dataview function (lower-case) -> Bases function
FUNCTION_MAP = {
    "avg": "average",
    "containsany": "containsAny",
    "containsall": "containsAll",
    "startswith": "startsWith",
    "endswith": "endsWith",
    "empty": "isEmpty",
    "dateformat": "format",
    "dur": "duration",
    "tofixed": "toFixed",
    "tostring": "toString",
}

# Functions whose result is a boolean predicate
FILTER_FUNCTIONS = frozenset(
    {
        "contains",
        "containsany",
        "containsall",
        "icontains",
        "startswith",
        "endswith",
        "empty",
        "notempty",
        "hastag",
        "haslink",
        "infolder",
    }
)

DATE_ACCESSORS = ("year", "month", "day", "hour", "minute", "second", "millisecond")

# Relative dates understood by date(); values are Bases expressions
RELATIVE_DATES = {
    "today": "now()",
    "now": "now()",
    "tomorrow": 'now() + "1 day"',
    "yesterday": 'now() + "-1 day"',
}

DURATION_UNITS = {
    "year": ("y", "yr", "yrs", "year", "years"),
    "month": ("mo", "month", "months"),
    "week": ("w", "wk", "wks", "week", "weeks"),
    "day": ("d", "day", "days"),
    "hour": ("h", "hr", "hrs", "hour", "hours"),
    "minute": ("m", "min", "mins", "minute", "minutes"),
    "second": ("s", "sec", "secs", "second", "seconds"),
    "millisecond": ("ms", "millisecond", "milliseconds"),
}

_UNIT_LOOKUP = {alias: unit for unit, aliases in DURATION_UNITS.items() for alias in aliases}

FILE_LABELS = {
    "file.path": "File Path",
    "file.name": "File Name",
    "file.basename": "File Name",
    "file.folder": "Folder",
    "file.extension": "Extension",
    "file.size": "File Size",
    "file.ctime": "Created Time",
    "file.mtime": "Modified Time",
    "file.tags": "Tags",
    "file.links": "Links",
    "file.backlinks": "Backlinks",
}


def map_property(prop: str) -> str:
    """Map a Dataview property path to its Bases spelling.

    Mapping is idempotent: ``map_property(map_property(p)) == map_property(p)``.
    """
    prop = prop.strip()
    if prop in PROPERTY_MAP:
        return PROPERTY_MAP[prop]
    if "-" in prop:
        return prop.replace("-", "_")
    return prop


def map_function(name: str) -> str:
    return FUNCTION_MAP.get(name.lower(), name)


def canonical_unit(unit: str) -> str | None:
    """Return the canonical singular unit for ``unit``, or None if unknown."""
    return _UNIT_LOOKUP.get(unit.lower())


def format_duration(duration: Duration) -> str:
    """Render a duration as the unquoted Bases form, e.g. ``7 days`` or ``-1 day``.

    Weeks are expressed in days; the unit is singular only for an amount of 1 or -1.
    """
    amount, unit = duration.amount, duration.unit
    if unit == "week":
        amount, unit = amount * 7, "day"
    if isinstance(amount, float) and amount.is_integer():
        amount = int(amount)
    return f"{amount} {unit}" if abs(amount) == 1 else f"{amount} {unit}s"


def display_label(path: str) -> str:
    """Human-readable column label for a Bases property path."""
    prefixes = []
    peeled = True
    while peeled:
        peeled = False
        for accessor in DATE_ACCESSORS:
            opening = f"{accessor}("
            if path.startswith(opening) and path.endswith(")"):
                prefixes.append(f"{accessor.capitalize()} of ")
                path = path[len(opening) : -1]
                peeled = True
                break

    if path.startswith("file."):
        label = FILE_LABELS.get(path, path.split(".")[-1])
    else:
        label = path[:1].upper() + path[1:]
    return "".join(prefixes) + label
