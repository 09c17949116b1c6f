"""Counter-based random numbers for reproducible parallel rendering.

``ti.random`` keeps one generator state per CPU thread, so the numbers a
pixel receives depend on how Taichi schedules the loop. Here every random
value is a pure hash of a key and a dimension index instead: the path owns
its key (derived from the render seed, the pixel and the sample index), and
the same key always yields the same stream regardless of thread count.

The hash is PCG-RXS-M-XS (Jarzynski and Olano, "Hash Functions for GPU
Rendering", 2020) evaluated on i32 with explicit logical shifts, since
Taichi's ``>>`` on signed integers is arithmetic.

Example:
    >>> @ti.kernel
    ... def k():
    ...     key = hash_combine(seed, pixel_index)
    ...     u = random_float(key, 0)
    ...     v = random_float(key, 1)
"""

import taichi as ti

# 2^-24, maps a 24-bit integer into [0, 1)
_INV_2_24 = 1.0 / 16777216.0

# 2^32 / golden ratio, as a signed 32-bit constant
_GOLDEN_I32 = -1640531527


@ti.func
def logical_shift_right(x: ti.i32, k: ti.i32) -> ti.i32:
    """Shift right filling with zeros. Requires 0 < k < 32."""
    return (x >> k) & ((1 << (32 - k)) - 1)


@ti.func
def pcg_hash(x: ti.i32) -> ti.i32:
    """Hash a 32-bit integer with a single PCG round."""
    state = x * 747796405 + (-1403630843)
    shift = logical_shift_right(state, 28) + 4
    word = (logical_shift_right(state, shift) ^ state) * 277803737
    return logical_shift_right(word, 22) ^ word


@ti.func
def hash_combine(a: ti.i32, b: ti.i32) -> ti.i32:
    """Derive a new key from an existing key and an integer."""
    return pcg_hash(a ^ pcg_hash(b))


@ti.func
def uint_to_unit_float(h: ti.i32) -> ti.f32:
    """Map the low 24 bits of a hash to a float in [0, 1)."""
    return ti.cast(h & 0x00FFFFFF, ti.f32) * _INV_2_24


@ti.func
def random_float(key: ti.i32, dim: ti.i32) -> ti.f32:
    """Uniform float in [0, 1) for dimension ``dim`` of the stream ``key``."""
    return uint_to_unit_float(hash_combine(key, dim))


@ti.func
def golden_ratio_sequence(index: ti.i32) -> ti.f32:
    """The index-th point of the additive recurrence frac(index / phi).

    Computed in fixed point so it stays exact for large sample counts.
    """
    return ti.cast(logical_shift_right(index * _GOLDEN_I32, 8), ti.f32) * _INV_2_24
