"""Output and internal (render) size derivation.

Both policies share the same rules, `bound` being the span for the output size
and the output size for the internal one:

1. width and height overridden: each is clamped to [2, bound] and evened down
2. one dimension overridden: it is clamped/evened, the other one follows the
   bound's aspect ratio, then is clamped/evened
3. nothing overridden: the output copies the span (evened), the internal size is the
   output scaled by `scale`
"""

import math

from .constants import MIN_DIMENSION
from .models import SizeSpec, Span

__all__ = [
    "SizeOverride",
    "build_size_presets",
    "clamp",
    "derive_internal",
    "derive_output",
    "even_floor",
    "round_half_up",
    "scaled_dimensions",
]

SizeOverride = tuple[int | None, int | None]

SCALE_PRESETS = (0.9, 0.85, 0.8, 0.75, 0.67, 0.6, 0.5)
COMMON_HEIGHTS = (1440, 1200, 1080, 900, 720)


def clamp(value: int, low: int, high: int) -> int:
    """Clamp `value` to [low, high]."""
    return min(max(value, low), high)


def even_floor(value: int) -> int:
    """Round down to an even number, never below 2."""
    if value <= MIN_DIMENSION:
        return MIN_DIMENSION
    return value - value % 2


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up."""
    return math.floor(value + 0.5)


def _fit(value: int, bound: int) -> int:
    return even_floor(clamp(value, MIN_DIMENSION, bound))


def _scale_axis(value: int, scale: float) -> int:
    scaled = value * scale
    if math.isnan(scaled):
        return MIN_DIMENSION
    if math.isinf(scaled):
        return _fit(value if scaled > 0 else MIN_DIMENSION, value)
    return _fit(round_half_up(scaled), value)


def scaled_dimensions(width: int, height: int, scale: float) -> SizeSpec:
    """Scale both axes, then clamp/even them against the input size.

    A NaN product gives the minimum size, an infinite one saturates.
    """
    return SizeSpec(_scale_axis(width, scale), _scale_axis(height, scale))


def _derive(bound_w: int, bound_h: int, override: SizeOverride | None) -> SizeSpec | None:
    width, height = override or (None, None)
    if width is not None and height is not None:
        return SizeSpec(_fit(width, bound_w), _fit(height, bound_h))
    if width is not None:
        width = _fit(width, bound_w)
        return SizeSpec(width, _fit(round_half_up(width * bound_h / bound_w), bound_h))
    if height is not None:
        height = _fit(height, bound_h)
        return SizeSpec(_fit(round_half_up(height * bound_w / bound_h), bound_w), height)
    return None


def derive_output(span: Span, output_override: SizeOverride | None = None) -> SizeSpec:
    """Return the gamescope output size (-W/-H) for `span`."""
    return _derive(span.width, span.height, output_override) or SizeSpec(_fit(span.width, span.width), _fit(span.height, span.height))


def derive_internal(output: SizeSpec, scale: float, virtual_override: SizeOverride | None = None) -> SizeSpec:
    """Return the gamescope internal render size (-w/-h) for `output`."""
    return _derive(output.width, output.height, virtual_override) or scaled_dimensions(output.width, output.height, scale)


def build_size_presets(span_width: int, span_height: int) -> list[tuple[str, SizeSpec]]:
    """List labelled internal size choices for the size picker.

    Native span first, then scaled variants, then common heights smaller than the span.
    """
    presets: list[tuple[str, SizeSpec]] = []
    seen: set[SizeSpec] = set()

    def add(label: str, size: SizeSpec) -> None:
        if size.width <= 0 or size.height <= 0 or size.width > span_width or size.height > span_height:
            return
        if size not in seen:
            seen.add(size)
            presets.append((label, size))

    add(f"Native span: {span_width}x{span_height} (100%)", SizeSpec(span_width, span_height))
    for scale in SCALE_PRESETS:
        size = scaled_dimensions(span_width, span_height, scale)
        add(f"Scaled: {size} ({round_half_up(scale * 100)}%)", size)
    for target_h in COMMON_HEIGHTS:
        if target_h >= span_height:
            continue
        width = _fit(round_half_up(target_h * span_width / span_height), span_width)
        add(f"Common height: {width}x{target_h} (~{target_h}p tall)", SizeSpec(width, target_h))
    return presets
