"""Formatting of procedural placement parameters."""

from tkextract.geometry_parsing.records import AlgoParameter


# Parameter names understood by the replication algorithms
CHILD = "ChildName"
TILT = "Tilt"
START_ANGLE = "StartAngle"
RANGE_ANGLE = "RangeAngle"
RADIUS_IN = "RadiusIn"
RADIUS_OUT = "RadiusOut"
Z_POSITION = "ZPosition"
NUMBER = "Number"
START_COPY_NO = "StartCopyNo"
INCR_COPY_NO = "IncrCopyNo"
N_MODS = "N"
RADIUS = "Radius"
CENTER = "Center"
IS_Z_PLUS = "IsZPlus"
TILT_ANGLE = "TiltAngle"
IS_FLIPPED = "IsFlipped"


def fmt(value):
    """Shortest stream-style rendering of a number (six significant digits)."""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    return f"{value:g}"


def string_param(name, value):
    return AlgoParameter(kind="string", name=name, value=value)


def numeric_param(name, value):
    if not isinstance(value, str):
        value = fmt(value)
    return AlgoParameter(kind="numeric", name=name, value=value)


def vector_param(x, y, z, name=CENTER):
    return AlgoParameter(kind="vector", name=name, value=f"{fmt(x)},{fmt(y)},{fmt(z)}")


def deg(value):
    return f"{fmt(value)}*deg"


def mm(value):
    return f"{fmt(value)}*mm"
