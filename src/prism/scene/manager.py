"""Unified scene manager coordinating primitives, materials and textures.

A ``SceneManager`` is a host-side description of a scene. Every ``add_*``
call validates its arguments immediately and raises
``SceneDefinitionError`` for malformed input, so a scene that was built
without errors is always renderable. Nothing touches the render fields
until ``build()`` (the commit step), which:

1. checks capacities,
2. clears every material, texture and primitive registry,
3. uploads textures, materials, primitives and the BVH,
4. marks the scene as the active one.

Only one scene can be active at a time because the render fields are
module-level. ``render()`` commits a scene automatically when it is not the
active one, and any modification after a commit makes the scene stale.

The unified material id space maps each material id to its
(material_type, type_local_index) pair, which the integrator reads through
``get_material_type`` and ``get_material_type_index``.

Example:
    >>> scene = SceneManager()
    >>> ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
    >>> glass = scene.add_dielectric_material(preset="SF66")
    >>> scene.add_sphere((0, -1000, 0), 1000, ground)
    >>> scene.add_sphere((0, 1, 0), 1, glass)
    >>> scene.build()
"""

import itertools
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import numpy as np
import numpy.typing as npt
import taichi as ti

from prism.core.spectrum import NUM_BASIS, rgb_to_spectrum_weights
from prism.errors import SceneDefinitionError
from prism.geometry.aabb import AABB
from prism.geometry.box import box_bounding_box, validate_box
from prism.geometry.bvh import DEFAULT_MAX_LEAF_SIZE, build_bvh
from prism.geometry.rectangle import rectangle_bounding_box, validate_rectangle
from prism.geometry.sphere import sphere_bounding_box, validate_sphere
from prism.geometry.triangle import triangle_bounding_box, validate_triangle
from prism.materials.common import check_emission, check_reflectance, check_unit_interval
from prism.materials.dielectric import (
    MAX_DIELECTRIC_MATERIALS,
    add_dielectric_material,
    clear_dielectric_materials,
    resolve_cauchy,
)
from prism.materials.diffuse_light import (
    MAX_DIFFUSE_LIGHT_MATERIALS,
    add_diffuse_light_material,
    clear_diffuse_light_materials,
)
from prism.materials.lambertian import (
    MAX_LAMBERTIAN_MATERIALS,
    add_lambertian_material,
    clear_lambertian_materials,
)
from prism.materials.metal import MAX_METAL_MATERIALS, add_metal_material, clear_metal_materials
from prism.materials.texture import (
    MAX_TEXELS,
    MAX_TEXTURES,
    add_image_texture,
    clear_textures,
    normalize_texture_image,
)
from prism.scene.intersection import (
    MAX_PRIMITIVES,
    PrimitiveArrays,
    PrimitiveType,
    clear_scene,
    get_node_count,
    upload_bvh,
    upload_primitives,
)

logger = logging.getLogger(__name__)

Triple = Sequence[float]


class MaterialType(IntEnum):
    """Enumeration of supported material types, used for dispatch."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2
    DIFFUSE_LIGHT = 3


class BackgroundType(IntEnum):
    """What a ray that escapes the scene sees."""

    UNIFORM = 0
    SKY = 1
    BLACK = 2


_MATERIAL_CAPACITY = {
    MaterialType.LAMBERTIAN: MAX_LAMBERTIAN_MATERIALS,
    MaterialType.METAL: MAX_METAL_MATERIALS,
    MaterialType.DIELECTRIC: MAX_DIELECTRIC_MATERIALS,
    MaterialType.DIFFUSE_LIGHT: MAX_DIFFUSE_LIGHT_MATERIALS,
}

MAX_MATERIALS = sum(_MATERIAL_CAPACITY.values())

SKY_HORIZON = (1.0, 1.0, 1.0)
SKY_ZENITH = (0.5, 0.7, 1.0)

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())

# Background: kind plus two spectra (uniform colour, or sky horizon/zenith)
background_kind = ti.field(dtype=ti.i32, shape=())
background_weights = ti.Vector.field(NUM_BASIS, dtype=ti.f32, shape=2)

_scene_tokens = itertools.count(1)
_active_token: int | None = None


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Material type of a material id, -1 for invalid ids."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Index into the type-specific registry, -1 for invalid ids."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material.
        params: The validated material parameters.
    """

    material_id: int
    material_type: MaterialType
    params: dict[str, Any]


@dataclass
class PrimitiveInfo:
    """Information about a primitive in the scene.

    Attributes:
        primitive_id: Index in the primitive table.
        primitive_type: Shape of the primitive.
        material_id: Material assigned to the primitive.
        params: Geometric parameters as given to the ``add_*`` call.
    """

    primitive_id: int
    primitive_type: PrimitiveType
    material_id: int
    params: dict[str, Any]


@dataclass
class BackgroundInfo:
    kind: BackgroundType = BackgroundType.SKY
    color: tuple[float, float, float] = (1.0, 1.0, 1.0)


@dataclass
class SceneConfig:
    """Plain-data scene description used for serialization."""

    materials: list[dict[str, Any]] = field(default_factory=list)
    primitives: list[dict[str, Any]] = field(default_factory=list)
    textures: list[list[Any]] = field(default_factory=list)
    background: dict[str, Any] = field(default_factory=dict)


def upload_background(background: BackgroundInfo) -> None:
    """Write a background into the render fields."""
    background_kind[None] = int(background.kind)
    if background.kind == BackgroundType.SKY:
        rows = (SKY_HORIZON, SKY_ZENITH)
    else:
        rows = (background.color, background.color)
    for i, rgb in enumerate(rows):
        background_weights[i] = [float(w) for w in rgb_to_spectrum_weights(rgb)]


def has_active_scene() -> bool:
    return _active_token is not None


def clear_active_scene() -> None:
    """Empty every render registry; no scene is active afterwards."""
    global _active_token
    _active_token = None
    clear_scene()
    clear_textures()
    clear_lambertian_materials()
    clear_metal_materials()
    clear_dielectric_materials()
    clear_diffuse_light_materials()
    _clear_material_tracking()


def _vector(value: Triple, name: str) -> tuple[float, float, float]:
    if len(value) != 3:
        raise SceneDefinitionError(f"{name} must have 3 components, got {value!r}")
    return (float(value[0]), float(value[1]), float(value[2]))


def _raise_if_invalid(problem: str | None) -> None:
    if problem is not None:
        raise SceneDefinitionError(problem)


class SceneManager:
    """Scene builder and committer.

    Attributes:
        materials: MaterialInfo for all registered materials.
        primitives: PrimitiveInfo for all primitives.
        textures: Validated texture images (float32, H x W x 3).
        background: What escaping rays see.
        max_leaf_size: BVH leaf size used by ``build``.

    Example:
        >>> scene = SceneManager()
        >>> red = scene.add_lambertian_material(albedo=(0.65, 0.05, 0.05))
        >>> light = scene.add_diffuse_light_material(emission=(15, 15, 15))
        >>> scene.add_rectangle((213, 554, 227), (130, 0, 0), (0, 0, 105), light)
        >>> scene.add_box((130, 0, 65), (295, 165, 230), red)
        >>> scene.set_background("black")
    """

    def __init__(self, max_leaf_size: int = DEFAULT_MAX_LEAF_SIZE) -> None:
        self.materials: list[MaterialInfo] = []
        self.primitives: list[PrimitiveInfo] = []
        self.textures: list[npt.NDArray[np.float32]] = []
        self.background = BackgroundInfo()
        self.max_leaf_size = max_leaf_size
        self._token = next(_scene_tokens)

    def _touch(self) -> None:
        self._token = next(_scene_tokens)

    def clear(self) -> None:
        """Remove all materials, textures and primitives from this scene."""
        self.materials.clear()
        self.primitives.clear()
        self.textures.clear()
        self.background = BackgroundInfo()
        self._touch()

    # =========================================================================
    # Textures and Materials
    # =========================================================================

    def add_texture(self, image: npt.ArrayLike) -> int:
        """Register an RGB image texture (H, W, 3), sRGB uint8 or linear float.

        Returns:
            The texture id to pass to ``add_lambertian_material``.
        """
        data = normalize_texture_image(image)
        if len(self.textures) >= MAX_TEXTURES:
            raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")
        self.textures.append(data)
        self._touch()
        return len(self.textures) - 1

    def _register_material(self, material_type: MaterialType, params: dict[str, Any]) -> int:
        same_type = sum(1 for m in self.materials if m.material_type == material_type)
        if same_type >= _MATERIAL_CAPACITY[material_type]:
            raise RuntimeError(
                f"Maximum number of {material_type.name.lower()} materials "
                f"({_MATERIAL_CAPACITY[material_type]}) exceeded"
            )
        material_id = len(self.materials)
        self.materials.append(MaterialInfo(material_id, material_type, params))
        self._touch()
        return material_id

    def add_lambertian_material(self, albedo: Triple, texture_id: int = -1) -> int:
        """Add a Lambertian (diffuse) material.

        Args:
            albedo: Diffuse reflectance as (R, G, B), each in [0, 1].
            texture_id: Optional texture from ``add_texture`` that overrides
                the albedo.

        Returns:
            The unified material ID for this material.

        Raises:
            SceneDefinitionError: If the albedo or texture id is invalid.
        """
        rgb = check_reflectance(albedo)
        if texture_id != -1 and not 0 <= texture_id < len(self.textures):
            raise SceneDefinitionError(f"texture id {texture_id} does not exist")
        return self._register_material(
            MaterialType.LAMBERTIAN, {"albedo": rgb, "texture_id": int(texture_id)}
        )

    def add_metal_material(self, albedo: Triple, fuzz: float = 0.0) -> int:
        """Add a metal material with reflectance ``albedo`` and ``fuzz`` in [0, 1]."""
        rgb = check_reflectance(albedo)
        fuzz = check_unit_interval(fuzz, "fuzz")
        return self._register_material(MaterialType.METAL, {"albedo": rgb, "fuzz": fuzz})

    def add_dielectric_material(
        self,
        cauchy: Sequence[float] | None = None,
        preset: str | None = None,
        tint: Triple | None = None,
    ) -> int:
        """Add a dispersive dielectric.

        Args:
            cauchy: (A, B) Cauchy coefficients with B in um^2.
            preset: Glass preset name (``CAUCHY_PRESETS``), BK7 by default.
            tint: Optional RGB tint in [0, 1].

        Returns:
            The unified material ID for this material.
        """
        a, b = resolve_cauchy(cauchy, preset)
        tint_rgb = check_reflectance(tint, "tint") if tint is not None else None
        return self._register_material(
            MaterialType.DIELECTRIC, {"cauchy": (a, b), "tint": tint_rgb}
        )

    def add_diffuse_light_material(self, emission: Triple) -> int:
        """Add an area light emitting ``emission`` (RGB, non-negative, may exceed 1)."""
        rgb = check_emission(emission)
        return self._register_material(MaterialType.DIFFUSE_LIGHT, {"emission": rgb})

    def get_material_count(self) -> int:
        return len(self.materials)

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def _check_material_id(self, material_id: int) -> int:
        if not 0 <= material_id < len(self.materials):
            raise SceneDefinitionError(
                f"material id {material_id} does not refer to a registered material"
            )
        return int(material_id)

    def _add_primitive(
        self, primitive_type: PrimitiveType, material_id: int, params: dict[str, Any]
    ) -> int:
        if len(self.primitives) >= MAX_PRIMITIVES:
            raise RuntimeError(f"Maximum number of primitives ({MAX_PRIMITIVES}) exceeded")
        primitive_id = len(self.primitives)
        self.primitives.append(PrimitiveInfo(primitive_id, primitive_type, material_id, params))
        self._touch()
        return primitive_id

    def add_sphere(self, center: Triple, radius: float, material_id: int) -> int:
        """Add a sphere. A negative radius keeps the geometry but flips the normals.

        Raises:
            SceneDefinitionError: If the sphere is malformed or the material
                id is dangling.
        """
        center = _vector(center, "center")
        _raise_if_invalid(validate_sphere(center, float(radius)))
        material_id = self._check_material_id(material_id)
        return self._add_primitive(
            PrimitiveType.SPHERE, material_id, {"center": center, "radius": float(radius)}
        )

    def add_box(self, minimum: Triple, maximum: Triple, material_id: int) -> int:
        """Add an axis-aligned box given its minimum and maximum corners."""
        minimum = _vector(minimum, "minimum")
        maximum = _vector(maximum, "maximum")
        _raise_if_invalid(validate_box(minimum, maximum))
        material_id = self._check_material_id(material_id)
        return self._add_primitive(
            PrimitiveType.BOX, material_id, {"minimum": minimum, "maximum": maximum}
        )

    def add_rectangle(
        self, corner: Triple, edge_u: Triple, edge_v: Triple, material_id: int
    ) -> int:
        """Add a parallelogram with vertices corner, +u, +v and +u+v.

        The front face is the side the normal cross(u, v) points to.
        """
        corner = _vector(corner, "corner")
        edge_u = _vector(edge_u, "edge_u")
        edge_v = _vector(edge_v, "edge_v")
        _raise_if_invalid(validate_rectangle(corner, edge_u, edge_v))
        material_id = self._check_material_id(material_id)
        return self._add_primitive(
            PrimitiveType.RECTANGLE,
            material_id,
            {"corner": corner, "edge_u": edge_u, "edge_v": edge_v},
        )

    def add_triangle(
        self,
        v0: Triple,
        v1: Triple,
        v2: Triple,
        material_id: int,
        uv0: Sequence[float] = (0.0, 0.0),
        uv1: Sequence[float] = (1.0, 0.0),
        uv2: Sequence[float] = (0.0, 1.0),
    ) -> int:
        """Add a triangle with optional per-vertex texture coordinates."""
        v0, v1, v2 = _vector(v0, "v0"), _vector(v1, "v1"), _vector(v2, "v2")
        _raise_if_invalid(validate_triangle(v0, v1, v2))
        uvs = []
        for name, uv in (("uv0", uv0), ("uv1", uv1), ("uv2", uv2)):
            if len(uv) != 2 or not all(np.isfinite(c) for c in uv):
                raise SceneDefinitionError(f"{name} must be 2 finite numbers, got {uv!r}")
            uvs.append((float(uv[0]), float(uv[1])))
        material_id = self._check_material_id(material_id)
        return self._add_primitive(
            PrimitiveType.TRIANGLE,
            material_id,
            {"v0": v0, "v1": v1, "v2": v2, "uv0": uvs[0], "uv1": uvs[1], "uv2": uvs[2]},
        )

    # =========================================================================
    # Convenience Methods (add object with material in one call)
    # =========================================================================

    def add_lambertian_sphere(
        self, center: Triple, radius: float, albedo: Triple
    ) -> tuple[int, int]:
        """Add a sphere with a new Lambertian material.

        Returns:
            Tuple of (primitive_id, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(
        self, center: Triple, radius: float, albedo: Triple, fuzz: float = 0.0
    ) -> tuple[int, int]:
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(
        self,
        center: Triple,
        radius: float,
        cauchy: Sequence[float] | None = None,
        preset: str | None = None,
    ) -> tuple[int, int]:
        material_id = self.add_dielectric_material(cauchy=cauchy, preset=preset)
        return self.add_sphere(center, radius, material_id), material_id

    # =========================================================================
    # Background
    # =========================================================================

    def set_background(self, kind: str = "sky", color: Triple = (1.0, 1.0, 1.0)) -> None:
        """Choose what escaping rays see.

        Args:
            kind: "sky" (white to light blue gradient), "uniform" (constant
                ``color``) or "black".
            color: Radiance of the uniform background.

        Raises:
            SceneDefinitionError: If the kind is unknown or the colour is
                negative.
        """
        try:
            background_type = BackgroundType[kind.upper()]
        except KeyError:
            raise SceneDefinitionError(
                f"unknown background {kind!r}; expected one of "
                f"{[b.name.lower() for b in BackgroundType]}"
            ) from None
        self.background = BackgroundInfo(background_type, check_emission(color))
        self._touch()

    # =========================================================================
    # Commit
    # =========================================================================

    @property
    def is_active(self) -> bool:
        """True if the render fields hold exactly this scene."""
        return _active_token == self._token

    def get_primitive_count(self) -> int:
        return len(self.primitives)

    def bounding_boxes(self) -> list[AABB]:
        """Bounding box of every primitive, indexed by primitive id."""
        boxes = []
        for prim in self.primitives:
            p = prim.params
            if prim.primitive_type == PrimitiveType.SPHERE:
                boxes.append(sphere_bounding_box(p["center"], p["radius"]))
            elif prim.primitive_type == PrimitiveType.BOX:
                boxes.append(box_bounding_box(p["minimum"], p["maximum"]))
            elif prim.primitive_type == PrimitiveType.RECTANGLE:
                boxes.append(rectangle_bounding_box(p["corner"], p["edge_u"], p["edge_v"]))
            else:
                boxes.append(triangle_bounding_box(p["v0"], p["v1"], p["v2"]))
        return boxes

    def primitive_arrays(self) -> PrimitiveArrays:
        """Pack the primitives into the structure-of-arrays upload layout."""
        n = len(self.primitives)
        arrays = PrimitiveArrays(
            types=np.zeros(n, dtype=np.int32),
            material_ids=np.zeros(n, dtype=np.int32),
            a=np.zeros((n, 3), dtype=np.float32),
            b=np.zeros((n, 3), dtype=np.float32),
            c=np.zeros((n, 3), dtype=np.float32),
            radius=np.zeros(n, dtype=np.float32),
            uv0=np.zeros((n, 2), dtype=np.float32),
            uv1=np.zeros((n, 2), dtype=np.float32),
            uv2=np.zeros((n, 2), dtype=np.float32),
        )
        for i, prim in enumerate(self.primitives):
            p = prim.params
            arrays.types[i] = int(prim.primitive_type)
            arrays.material_ids[i] = prim.material_id
            if prim.primitive_type == PrimitiveType.SPHERE:
                arrays.a[i] = p["center"]
                arrays.radius[i] = p["radius"]
            elif prim.primitive_type == PrimitiveType.BOX:
                arrays.a[i] = p["minimum"]
                arrays.b[i] = p["maximum"]
            elif prim.primitive_type == PrimitiveType.RECTANGLE:
                arrays.a[i] = p["corner"]
                arrays.b[i] = p["edge_u"]
                arrays.c[i] = p["edge_v"]
            else:
                arrays.a[i] = p["v0"]
                arrays.b[i] = p["v1"]
                arrays.c[i] = p["v2"]
                arrays.uv0[i] = p["uv0"]
                arrays.uv1[i] = p["uv1"]
                arrays.uv2[i] = p["uv2"]
        return arrays

    def _check_capacity(self) -> None:
        texels = sum(t.shape[0] * t.shape[1] for t in self.textures)
        if texels > MAX_TEXELS:
            raise RuntimeError(f"Texture storage ({MAX_TEXELS} texels) exceeded")

    def _upload_materials(self) -> None:
        for info in self.materials:
            p = info.params
            if info.material_type == MaterialType.LAMBERTIAN:
                type_index = add_lambertian_material(p["albedo"], p["texture_id"])
            elif info.material_type == MaterialType.METAL:
                type_index = add_metal_material(p["albedo"], p["fuzz"])
            elif info.material_type == MaterialType.DIELECTRIC:
                type_index = add_dielectric_material(cauchy=p["cauchy"], tint=p["tint"])
            else:
                type_index = add_diffuse_light_material(p["emission"])
            material_types[info.material_id] = int(info.material_type)
            material_type_indices[info.material_id] = type_index
        num_materials[None] = len(self.materials)

    def build(self) -> None:
        """Commit the scene to the render fields and build its BVH.

        Raises:
            RuntimeError: If a capacity is exceeded. The previously active
                scene is left intact in that case.
        """
        global _active_token
        self._check_capacity()

        clear_active_scene()

        for image in self.textures:
            add_image_texture(image)
        self._upload_materials()
        upload_primitives(self.primitive_arrays())
        bvh = build_bvh(self.bounding_boxes(), self.max_leaf_size)
        upload_bvh(bvh)
        upload_background(self.background)

        _active_token = self._token
        logger.info(
            "Scene committed: %d primitives, %d materials, %d textures, "
            "BVH %d nodes (depth %d)",
            len(self.primitives),
            len(self.materials),
            len(self.textures),
            get_node_count(),
            bvh.depth(),
        )

    def ensure_built(self) -> None:
        """Commit the scene unless it is already the active one."""
        if not self.is_active:
            self.build()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        config = SceneConfig()
        for mat in self.materials:
            params = {k: (list(v) if isinstance(v, tuple) else v) for k, v in mat.params.items()}
            config.materials.append({"type": mat.material_type.name.lower(), **params})
        for prim in self.primitives:
            params = {k: list(v) if isinstance(v, tuple) else v for k, v in prim.params.items()}
            config.primitives.append(
                {
                    "type": prim.primitive_type.name.lower(),
                    "material_id": prim.material_id,
                    **params,
                }
            )
        config.textures = [t.tolist() for t in self.textures]
        config.background = {
            "kind": self.background.kind.name.lower(),
            "color": list(self.background.color),
        }
        return config

    def from_config(self, config: SceneConfig) -> None:
        """Replace this scene with the contents of a configuration.

        The configuration is loaded into a fresh scene first; this scene is
        only replaced once every entry has been accepted.

        Raises:
            SceneDefinitionError: If the configuration contains invalid or
                missing data. The scene is left unchanged in that case.
        """
        staged = SceneManager(self.max_leaf_size)
        try:
            staged._load_config(config)
        except KeyError as e:
            raise SceneDefinitionError(f"scene configuration is missing field {e}") from None

        self.materials = staged.materials
        self.primitives = staged.primitives
        self.textures = staged.textures
        self.background = staged.background
        self._touch()

    def _load_config(self, config: SceneConfig) -> None:
        for image in config.textures:
            self.add_texture(np.asarray(image, dtype=np.float32))

        for mat in config.materials:
            kind = str(mat.get("type", "")).lower()
            if kind == "lambertian":
                self.add_lambertian_material(mat["albedo"], mat.get("texture_id", -1))
            elif kind == "metal":
                self.add_metal_material(mat["albedo"], mat.get("fuzz", 0.0))
            elif kind == "dielectric":
                self.add_dielectric_material(
                    cauchy=mat.get("cauchy"), preset=mat.get("preset"), tint=mat.get("tint")
                )
            elif kind == "diffuse_light":
                self.add_diffuse_light_material(mat["emission"])
            else:
                raise SceneDefinitionError(f"Unknown material type: {kind!r}")

        for prim in config.primitives:
            kind = str(prim.get("type", "")).lower()
            material_id = prim.get("material_id", -1)
            if kind == "sphere":
                self.add_sphere(prim["center"], prim["radius"], material_id)
            elif kind == "box":
                self.add_box(prim["minimum"], prim["maximum"], material_id)
            elif kind == "rectangle":
                self.add_rectangle(prim["corner"], prim["edge_u"], prim["edge_v"], material_id)
            elif kind == "triangle":
                self.add_triangle(
                    prim["v0"],
                    prim["v1"],
                    prim["v2"],
                    material_id,
                    prim.get("uv0", (0.0, 0.0)),
                    prim.get("uv1", (1.0, 0.0)),
                    prim.get("uv2", (0.0, 1.0)),
                )
            else:
                raise SceneDefinitionError(f"Unknown primitive type: {kind!r}")

        if config.background:
            self.set_background(
                config.background.get("kind", "sky"), config.background.get("color", (1, 1, 1))
            )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a JSON-compatible dictionary."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "primitives": config.primitives,
            "textures": config.textures,
            "background": config.background,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary produced by ``to_dict``."""
        config = SceneConfig(
            materials=data.get("materials", []),
            primitives=data.get("primitives", []),
            textures=data.get("textures", []),
            background=data.get("background", {}),
        )
        self.from_config(config)
