"""Spectral reflectance model and colour matching.

RGB colours enter the renderer through Smits' RGB-to-spectrum conversion
(B. Smits, "An RGB to Spectrum Conversion for Reflectances", 1999). Every
RGB triple becomes a non-negative combination of seven smooth basis spectra
(white, cyan, magenta, yellow, red, green, blue); the combination always
uses white plus one secondary plus one primary, chosen by the ordering of
the channels. The basis spectra are the published 10-bin tables, where bin
k covers [380 + 34k, 380 + 34(k+1)] nm.

A spectrum is evaluated at a wavelength by linear interpolation between bin
centres, clamped at both ends, so reflectance is continuous in wavelength.

Going back to RGB, spectra are integrated against the CIE 1931 colour
matching functions (the multi-lobe analytic fit of Wyman, Sloan and
Shirley, 2013) and mapped with a 3x3 matrix. That matrix is fitted once by
least squares so the seven basis spectra reproduce their nominal RGB
triples; with it, any RGB in the unit cube survives the round trip
RGB -> spectrum -> XYZ -> RGB to within about 0.005 per channel.

Example:
    >>> from prism.core.spectrum import rgb_to_spectrum_weights, rgb_round_trip
    >>> weights = rgb_to_spectrum_weights((0.8, 0.3, 0.3))
    >>> rgb_round_trip((0.8, 0.3, 0.3))
    array([0.799, 0.301, 0.302])
"""

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

# =============================================================================
# Wavelength Range
# =============================================================================

LAMBDA_MIN = 380.0
LAMBDA_MAX = 700.0
LAMBDA_RANGE = LAMBDA_MAX - LAMBDA_MIN

# Density of a uniformly sampled wavelength
WAVELENGTH_PDF = 1.0 / LAMBDA_RANGE

NUM_BINS = 10
BIN_WIDTH = 34.0
NUM_BASIS = 7

# Basis spectrum indices
WHITE, CYAN, MAGENTA, YELLOW, RED, GREEN, BLUE = range(NUM_BASIS)

# Published Smits basis spectra, one row per basis, one column per bin.
SMITS_BASIS = np.array(
    [
        [1.0000, 1.0000, 0.9999, 0.9993, 0.9992, 0.9998, 1.0000, 1.0000, 1.0000, 1.0000],
        [0.9710, 0.9426, 1.0007, 1.0007, 1.0007, 1.0007, 0.1564, 0.0000, 0.0000, 0.0000],
        [1.0000, 1.0000, 0.9685, 0.2229, 0.0000, 0.0458, 0.8369, 1.0000, 1.0000, 0.9959],
        [0.0001, 0.0000, 0.1088, 0.6651, 1.0000, 1.0000, 0.9996, 0.9586, 0.9685, 0.9840],
        [0.1012, 0.0515, 0.0000, 0.0000, 0.0000, 0.0000, 0.8325, 1.0149, 1.0149, 1.0149],
        [0.0000, 0.0000, 0.0273, 0.7937, 1.0000, 0.9418, 0.1719, 0.0000, 0.0000, 0.0025],
        [1.0000, 1.0000, 0.8916, 0.3323, 0.0000, 0.0000, 0.0003, 0.0369, 0.0483, 0.0496],
    ],
    dtype=np.float64,
)

# Nominal RGB of each basis spectrum, used to calibrate XYZ_TO_RGB
BASIS_RGB = np.array(
    [
        [1.0, 1.0, 1.0],
        [0.0, 1.0, 1.0],
        [1.0, 0.0, 1.0],
        [1.0, 1.0, 0.0],
        [1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0],
    ],
    dtype=np.float64,
)

# IEC 61966-2-1 XYZ -> linear sRGB (D65 white)
XYZ_TO_SRGB = np.array(
    [
        [3.2409699419, -1.5373831776, -0.4986107603],
        [-0.9692436363, 1.8759675015, 0.0415550574],
        [0.0556300797, -0.2039769589, 1.0569715142],
    ],
    dtype=np.float64,
)

# Midpoints of 1 nm steps across the visible range, for host integration
INTEGRATION_WAVELENGTHS = np.arange(LAMBDA_MIN + 0.5, LAMBDA_MAX, 1.0)

RGB = Sequence[float]


# =============================================================================
# Host-side Conversion
# =============================================================================


def rgb_to_spectrum_weights(rgb: RGB) -> npt.NDArray[np.float64]:
    """Compute Smits basis weights for an RGB triple.

    The conversion is linear in the input, so values above 1 (emission)
    simply scale the weights.

    Args:
        rgb: The (R, G, B) colour.

    Returns:
        Array of NUM_BASIS non-negative weights.
    """
    r, g, b = (float(c) for c in rgb)
    weights = np.zeros(NUM_BASIS, dtype=np.float64)

    if r <= g and r <= b:
        weights[WHITE] = r
        if g <= b:
            weights[CYAN] = g - r
            weights[BLUE] = b - g
        else:
            weights[CYAN] = b - r
            weights[GREEN] = g - b
    elif g <= r and g <= b:
        weights[WHITE] = g
        if r <= b:
            weights[MAGENTA] = r - g
            weights[BLUE] = b - r
        else:
            weights[MAGENTA] = b - g
            weights[RED] = r - b
    else:
        weights[WHITE] = b
        if r <= g:
            weights[YELLOW] = r - b
            weights[GREEN] = g - r
        else:
            weights[YELLOW] = g - b
            weights[RED] = r - g

    return weights


def _bin_coordinates(
    wavelengths: npt.ArrayLike,
) -> tuple[npt.NDArray[np.int64], npt.NDArray[np.float64]]:
    x = (np.asarray(wavelengths, dtype=np.float64) - LAMBDA_MIN) / BIN_WIDTH - 0.5
    k = np.clip(np.floor(x), 0, NUM_BINS - 2).astype(np.int64)
    f = np.clip(x - k, 0.0, 1.0)
    return k, f


def evaluate_spectrum(
    weights: npt.ArrayLike,
    wavelengths: npt.ArrayLike,
) -> npt.NDArray[np.float64]:
    """Evaluate a weighted basis combination at the given wavelengths.

    No clamping is applied; use reflectance_at for reflectances.
    """
    curve = np.asarray(weights, dtype=np.float64) @ SMITS_BASIS
    k, f = _bin_coordinates(wavelengths)
    return curve[k] * (1.0 - f) + curve[k + 1] * f


def reflectance_at(weights: npt.ArrayLike, wavelengths: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Evaluate a reflectance spectrum, clamped to [0, 1]."""
    return np.clip(evaluate_spectrum(weights, wavelengths), 0.0, 1.0)


def cie_xyz(wavelengths: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """CIE 1931 2-degree colour matching functions (analytic fit).

    Args:
        wavelengths: Wavelengths in nanometres.

    Returns:
        Array of shape (..., 3) with x-bar, y-bar, z-bar.
    """
    lam = np.asarray(wavelengths, dtype=np.float64)
    t1 = np.log((lam + 570.1) / 1014.0)
    t2 = np.log((1338.0 - lam) / 743.5)
    x = 0.398 * np.exp(-1250.0 * t1 * t1) + 1.132 * np.exp(-234.0 * t2 * t2)
    y = 1.011 * np.exp(-0.5 * ((lam - 556.1) / 46.14) ** 2)
    t3 = np.log((lam - 265.8) / 180.4)
    z = 2.060 * np.exp(-32.0 * t3 * t3)
    return np.stack([x, y, z], axis=-1)


def spectrum_to_xyz(
    values: npt.ArrayLike, wavelengths: npt.ArrayLike | None = None
) -> npt.NDArray[np.float64]:
    """Integrate a sampled spectrum against the colour matching functions.

    Args:
        values: Spectrum values at ``wavelengths``.
        wavelengths: Evenly spaced sample wavelengths covering the visible
            range. Defaults to INTEGRATION_WAVELENGTHS.

    Returns:
        The XYZ tristimulus values.
    """
    if wavelengths is None:
        wavelengths = INTEGRATION_WAVELENGTHS
    lam = np.asarray(wavelengths, dtype=np.float64)
    step = LAMBDA_RANGE / lam.size
    return (np.asarray(values, dtype=np.float64)[:, None] * cie_xyz(lam)).sum(axis=0) * step


def calibrate_xyz_to_rgb() -> npt.NDArray[np.float64]:
    """Fit the XYZ -> RGB matrix against the Smits basis.

    Returns:
        The 3x3 matrix M minimising sum |M xyz_i - rgb_i|^2 over the seven
        basis spectra.
    """
    basis_xyz = np.stack(
        [
            spectrum_to_xyz(evaluate_spectrum(weights, INTEGRATION_WAVELENGTHS))
            for weights in np.eye(NUM_BASIS)
        ]
    )
    solution, *_ = np.linalg.lstsq(basis_xyz, BASIS_RGB, rcond=None)
    return solution.T


XYZ_TO_RGB = calibrate_xyz_to_rgb()


def xyz_to_rgb(xyz: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Convert XYZ values (shape (..., 3)) to linear RGB."""
    return np.asarray(xyz, dtype=np.float64) @ XYZ_TO_RGB.T


def rgb_round_trip(rgb: RGB) -> npt.NDArray[np.float64]:
    """Lift an RGB colour to a spectrum and integrate it back to RGB."""
    values = evaluate_spectrum(rgb_to_spectrum_weights(rgb), INTEGRATION_WAVELENGTHS)
    return xyz_to_rgb(spectrum_to_xyz(values))


# =============================================================================
# Device-side Evaluation
# =============================================================================

# Spectrum as a vector of basis weights
SpectrumWeights = ti.types.vector(NUM_BASIS, ti.f32)

basis_table = ti.field(dtype=ti.f32, shape=(NUM_BASIS, NUM_BINS))
basis_table.from_numpy(SMITS_BASIS.astype(np.float32))


@ti.func
def evaluate_weights(weights: SpectrumWeights, wavelength: ti.f32) -> ti.f32:
    """Evaluate a weighted basis combination at one wavelength (unclamped)."""
    x = (wavelength - LAMBDA_MIN) / BIN_WIDTH - 0.5
    k = ti.min(ti.max(ti.cast(ti.floor(x), ti.i32), 0), NUM_BINS - 2)
    f = tm.clamp(x - ti.cast(k, ti.f32), 0.0, 1.0)

    value = 0.0
    for b in ti.static(range(NUM_BASIS)):
        value += weights[b] * (basis_table[b, k] * (1.0 - f) + basis_table[b, k + 1] * f)
    return value


@ti.func
def spectral_reflectance(weights: SpectrumWeights, wavelength: ti.f32) -> ti.f32:
    """Reflectance at a wavelength, clamped to [0, 1]."""
    return tm.clamp(evaluate_weights(weights, wavelength), 0.0, 1.0)


@ti.func
def spectral_emission(weights: SpectrumWeights, wavelength: ti.f32) -> ti.f32:
    """Emitted radiance at a wavelength, clamped to be non-negative."""
    return ti.max(evaluate_weights(weights, wavelength), 0.0)


@ti.func
def rgb_to_weights(rgb: tm.vec3) -> SpectrumWeights:
    """Smits conversion inside a kernel (used for texture lookups)."""
    r = rgb.x
    g = rgb.y
    b = rgb.z
    w = SpectrumWeights(0.0)

    if r <= g and r <= b:
        w[WHITE] = r
        if g <= b:
            w[CYAN] = g - r
            w[BLUE] = b - g
        else:
            w[CYAN] = b - r
            w[GREEN] = g - b
    elif g <= r and g <= b:
        w[WHITE] = g
        if r <= b:
            w[MAGENTA] = r - g
            w[BLUE] = b - r
        else:
            w[MAGENTA] = b - g
            w[RED] = r - b
    else:
        w[WHITE] = b
        if r <= g:
            w[YELLOW] = r - b
            w[GREEN] = g - r
        else:
            w[YELLOW] = g - b
            w[RED] = r - g

    return w


@ti.func
def cie_xyz_at(wavelength: ti.f32) -> tm.vec3:
    """CIE 1931 colour matching functions at one wavelength."""
    t1 = ti.log((wavelength + 570.1) / 1014.0)
    t2 = ti.log((1338.0 - wavelength) / 743.5)
    x = 0.398 * ti.exp(-1250.0 * t1 * t1) + 1.132 * ti.exp(-234.0 * t2 * t2)
    ty = (wavelength - 556.1) / 46.14
    y = 1.011 * ti.exp(-0.5 * ty * ty)
    t3 = ti.log((wavelength - 265.8) / 180.4)
    z = 2.060 * ti.exp(-32.0 * t3 * t3)
    return tm.vec3(x, y, z)
