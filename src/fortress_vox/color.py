"""
Color Management Module

Handles:
- sRGB to Linear color space conversion and back
- RGB <-> HSV conversion, in linear space
- The palette adjustments: darken, desaturate, minimum value, and the
  seasonal hue shift of plant growths
- The 16 console colors the game uses for growth prints

Color Space Background:
- The game reports sRGB (perceptual) colors
- HSV adjustments are done on linearized values, then converted back
  to sRGB for the palette entry
- Hue is expressed in degrees [0, 360), saturation and value in [0, 1]
"""

from typing import Tuple
from numba import njit


RGB = Tuple[int, int, int]
HSV = Tuple[float, float, float]


@njit(cache=True)
def _srgb_to_linear_component(c: float) -> float:
    """
    Convert a single sRGB component to Linear.

    The sRGB standard uses a piecewise function:
    - Linear below threshold (0.04045)
    - Gamma curve above threshold

    Args:
        c: sRGB value normalized to [0, 1]

    Returns:
        Linear value
    """
    if c <= 0.04045:
        return c / 12.92
    else:
        return ((c + 0.055) / 1.055) ** 2.4


@njit(cache=True)
def _linear_to_srgb_component(c: float) -> float:
    """
    Convert a single Linear component to sRGB.

    Args:
        c: Linear value normalized to [0, 1]

    Returns:
        sRGB value
    """
    if c <= 0.0031308:
        return c * 12.92
    else:
        return 1.055 * (c ** (1.0 / 2.4)) - 0.055


@njit(cache=True)
def _rgb_to_hsv(r: float, g: float, b: float):
    high = max(r, g, b)
    low = min(r, g, b)
    chroma = high - low

    if chroma == 0.0:
        hue = 0.0
    elif high == r:
        hue = 60.0 * (((g - b) / chroma) % 6.0)
    elif high == g:
        hue = 60.0 * ((b - r) / chroma + 2.0)
    else:
        hue = 60.0 * ((r - g) / chroma + 4.0)

    saturation = 0.0 if high == 0.0 else chroma / high
    return hue % 360.0, saturation, high


@njit(cache=True)
def _hsv_to_rgb(h: float, s: float, v: float):
    h = h % 360.0
    s = max(0.0, min(1.0, s))
    v = max(0.0, min(1.0, v))

    chroma = v * s
    sector = h / 60.0
    x = chroma * (1.0 - abs(sector % 2.0 - 1.0))
    m = v - chroma

    if sector < 1.0:
        r, g, b = chroma, x, 0.0
    elif sector < 2.0:
        r, g, b = x, chroma, 0.0
    elif sector < 3.0:
        r, g, b = 0.0, chroma, x
    elif sector < 4.0:
        r, g, b = 0.0, x, chroma
    elif sector < 5.0:
        r, g, b = x, 0.0, chroma
    else:
        r, g, b = chroma, 0.0, x
    return r + m, g + m, b + m


def rgb_to_hsv(rgb: RGB) -> HSV:
    """
    Convert an sRGB color to HSV in linear space.

    Args:
        rgb: (r, g, b) in [0, 255]

    Returns:
        (hue in degrees, saturation, value)
    """
    r, g, b = (_srgb_to_linear_component(c / 255.0) for c in rgb[:3])
    return _rgb_to_hsv(r, g, b)


def hsv_to_rgb(hsv: HSV) -> RGB:
    """
    Convert a linear-space HSV color back to sRGB.

    Args:
        hsv: (hue in degrees, saturation, value)

    Returns:
        (r, g, b) in [0, 255]
    """
    linear = _hsv_to_rgb(float(hsv[0]), float(hsv[1]), float(hsv[2]))
    return tuple(
        int(_linear_to_srgb_component(max(0.0, min(1.0, c))) * 255.0 + 0.5)
        for c in linear
    )


def darken(rgb: RGB, factor: float) -> RGB:
    """Scale the HSV value down by ``factor`` (0.2 keeps 80%)."""
    h, s, v = rgb_to_hsv(rgb)
    return hsv_to_rgb((h, s, v * (1.0 - factor)))


def desaturate(rgb: RGB, factor: float) -> RGB:
    """Scale the HSV saturation down by ``factor``."""
    h, s, v = rgb_to_hsv(rgb)
    return hsv_to_rgb((h, s * (1.0 - factor), v))


def with_min_value(rgb: RGB, minimum: float) -> RGB:
    """Raise the HSV value to at least ``minimum``, leaving brighter colors untouched."""
    h, s, v = rgb_to_hsv(rgb)
    if v >= minimum:
        return tuple(rgb[:3])
    return hsv_to_rgb((h, s, minimum))


def recolor(rgb: RGB, source: RGB, dest: RGB) -> RGB:
    """
    Shift a growth color the way its print changes over the year.

    The hue moves by ``dest.h - source.h``. The value is rescaled so that
    ``source.v`` maps to ``dest.v``: proportionally when darkening, and
    measured from white when brightening.

    Args:
        rgb: Material color
        source: Color of the earliest print
        dest: Color of the current print

    Returns:
        Adjusted sRGB color
    """
    h, s, v = rgb_to_hsv(rgb)
    sh, _, sv = rgb_to_hsv(source)
    dh, _, dv = rgb_to_hsv(dest)

    h = (h + dh - sh) % 360.0
    if sv > dv:
        v *= dv / sv
    elif sv < 1.0:
        v = 1.0 - (1.0 - v) * ((1.0 - dv) / (1.0 - sv))
    return hsv_to_rgb((h, s, v))


# Console colors by index, as CSS named colors
CONSOLE_COLORS = (
    (0, 0, 0),        # black
    (0, 0, 255),      # blue
    (0, 128, 0),      # green
    (0, 255, 255),    # cyan
    (255, 0, 0),      # red
    (139, 0, 139),    # magenta
    (165, 42, 42),    # brown
    (128, 128, 128),  # grey
    (169, 169, 169),  # dark grey
    (173, 216, 230),  # light blue
    (144, 238, 144),  # light green
    (224, 255, 255),  # light cyan
    (255, 192, 203),  # light red
    (255, 0, 255),    # light magenta
    (255, 255, 0),    # yellow
    (255, 255, 255),  # white
)


def console_color(index: int) -> RGB:
    """sRGB color of a console color index, black when out of range."""
    if 0 <= index < len(CONSOLE_COLORS):
        return CONSOLE_COLORS[index]
    return CONSOLE_COLORS[0]
