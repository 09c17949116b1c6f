"""Preset scenes.

Each factory returns a ``(SceneManager, Camera)`` pair ready to render:

- ``three_spheres``: diffuse, fuzzy metal and SF66 glass spheres; the glass
  sphere holds two hollow bubbles (negative radius).
- ``many_spheres``: the "final scene" of random small spheres on a checker
  ground around three large ones.
- ``simple_light``: a glowing sphere above glass, textured and metal
  spheres, no sky.
- ``cornell``: the 555-unit Cornell box with two white blocks.
- ``dispersion``: a flint glass prism lit by a narrow light panel; the
  refracted light fans out into a spectrum on the floor.

Photo textures are replaced by a procedural checkerboard.

Example:
    >>> from prism.scene.presets import SCENES, build_scene
    >>> sorted(SCENES)
    ['cornell', 'dispersion', 'many_spheres', 'simple_light', 'three_spheres']
    >>> scene, camera = build_scene("cornell")
"""

from collections.abc import Callable

import numpy as np

from prism.camera.camera import Camera
from prism.materials.texture import checker_image
from prism.scene.manager import SceneManager

# Seed for the random sphere layout of many_spheres
MANY_SPHERES_LAYOUT_SEED = 42

# Cornell box dimensions and reflectances
BOX_SIZE = 555.0
RED_WALL_ALBEDO = (0.65, 0.05, 0.05)
GREEN_WALL_ALBEDO = (0.12, 0.45, 0.15)
WHITE_WALL_ALBEDO = (0.73, 0.73, 0.73)
CORNELL_LIGHT_EMISSION = (15.0, 15.0, 15.0)


def _add_ground_triangles(scene: SceneManager, material_id: int) -> None:
    """Two triangles covering x in [-20, 20], z in [-30, 30] at y = 0."""
    scene.add_triangle(
        (-20.0, 0.0, -30.0),
        (-20.0, 0.0, 30.0),
        (20.0, 0.0, 30.0),
        material_id,
        uv0=(0.0, 0.0),
        uv1=(0.0, 1.0),
        uv2=(1.0, 1.0),
    )
    scene.add_triangle(
        (-20.0, 0.0, -30.0),
        (20.0, 0.0, -30.0),
        (20.0, 0.0, 30.0),
        material_id,
        uv0=(0.0, 0.0),
        uv1=(1.0, 0.0),
        uv2=(1.0, 1.0),
    )


def three_spheres() -> tuple[SceneManager, Camera]:
    scene = SceneManager()

    blue = scene.add_lambertian_material(albedo=(0.1, 0.2, 0.5))
    yellow = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
    gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=1.0)
    glass = scene.add_dielectric_material(preset="SF66")

    scene.add_sphere((0.0, 0.0, -1.0), 0.5, blue)
    scene.add_sphere((0.0, -100.5, -1.0), 100.0, yellow)
    scene.add_sphere((1.0, 0.0, -1.0), 0.5, gold)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    # Bubbles inside the glass sphere
    scene.add_sphere((-1.25, 0.0, -1.0), -0.2, glass)
    scene.add_sphere((-0.75, 0.0, -1.0), -0.2, glass)
    scene.set_background("sky")

    camera = Camera(
        look_from=(-4.0, 0.7, 3.0),
        look_at=(-1.0, 0.0, -1.0),
        vfov=15.0,
        aperture=0.1,
    )
    return scene, camera


def many_spheres(layout_seed: int = MANY_SPHERES_LAYOUT_SEED) -> tuple[SceneManager, Camera]:
    """Random small spheres on a checkerboard.

    Args:
        layout_seed: Seed of the sphere placement. It only changes the
            scene, not the render's random streams.
    """
    rng = np.random.default_rng(layout_seed)
    scene = SceneManager()

    checker = scene.add_texture(checker_image())
    ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5), texture_id=checker)
    glass = scene.add_dielectric_material(preset="SF66")
    brown = scene.add_lambertian_material(albedo=(0.4, 0.2, 0.1))
    steel = scene.add_metal_material(albedo=(0.7, 0.6, 0.5), fuzz=0.0)

    _add_ground_triangles(scene, ground)
    scene.add_sphere((0.0, 1.0, 0.0), 1.0, glass)
    scene.add_sphere((-4.0, 1.0, 0.0), 1.0, brown)
    scene.add_sphere((4.0, 1.0, 0.0), 1.0, steel)

    for a in range(-11, 11):
        for b in range(-11, 11):
            choose_mat = rng.random()
            center = np.array([a + 0.9 * rng.random(), 0.2, b + 0.9 * rng.random()])
            if np.linalg.norm(center - np.array([4.0, 0.2, 0.0])) <= 0.9:
                continue

            if choose_mat < 0.8:
                albedo = rng.random(3) * rng.random(3)
                material = scene.add_lambertian_material(albedo=albedo.tolist())
            elif choose_mat < 0.95:
                albedo = 0.5 * (1.0 + rng.random(3))
                material = scene.add_metal_material(
                    albedo=albedo.tolist(), fuzz=0.5 * rng.random()
                )
            else:
                material = glass
            scene.add_sphere(center.tolist(), 0.2, material)

    scene.set_background("sky")
    camera = Camera(
        look_from=(13.0, 2.0, 3.0),
        look_at=(0.0, 0.0, 0.0),
        vfov=30.0,
        aperture=0.1,
        focus_dist=10.0,
    )
    return scene, camera


def simple_light() -> tuple[SceneManager, Camera]:
    scene = SceneManager()

    checker = scene.add_texture(checker_image())
    ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
    glass = scene.add_dielectric_material(preset="SF66")
    textured = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5), texture_id=checker)
    steel = scene.add_metal_material(albedo=(0.7, 0.6, 0.5), fuzz=0.0)
    light = scene.add_diffuse_light_material(emission=(5.0, 5.0, 5.0))

    _add_ground_triangles(scene, ground)
    scene.add_sphere((0.0, 1.0, 0.0), 1.0, glass)
    scene.add_sphere((0.0, 1.3, 0.0), -0.7, glass)
    scene.add_sphere((-3.0, 1.0, 0.0), 1.0, textured)
    scene.add_sphere((3.0, 1.0, 0.0), 1.0, steel)
    scene.add_sphere((0.0, 6.0, 2.0), 2.0, light)
    scene.set_background("black")

    camera = Camera(
        look_from=(0.0, 2.0, -10.0),
        look_at=(0.0, 1.0, 0.0),
        vfov=30.0,
        aperture=0.1,
        focus_dist=10.0,
    )
    return scene, camera


def cornell() -> tuple[SceneManager, Camera]:
    """The Cornell box, camera on the open side at z = -800.

    Wall rectangles are oriented so their front faces point into the box;
    the light panel faces down.
    """
    s = BOX_SIZE
    scene = SceneManager()

    red = scene.add_lambertian_material(albedo=RED_WALL_ALBEDO)
    white = scene.add_lambertian_material(albedo=WHITE_WALL_ALBEDO)
    green = scene.add_lambertian_material(albedo=GREEN_WALL_ALBEDO)
    light = scene.add_diffuse_light_material(emission=CORNELL_LIGHT_EMISSION)

    # Light panel just below the ceiling
    scene.add_rectangle((213.0, 554.0, 227.0), (130.0, 0.0, 0.0), (0.0, 0.0, 105.0), light)
    # Ceiling and floor
    scene.add_rectangle((0.0, s, 0.0), (s, 0.0, 0.0), (0.0, 0.0, s), white)
    scene.add_rectangle((0.0, 0.0, 0.0), (0.0, 0.0, s), (s, 0.0, 0.0), white)
    # Back wall
    scene.add_rectangle((0.0, 0.0, s), (0.0, s, 0.0), (s, 0.0, 0.0), white)
    # Side walls
    scene.add_rectangle((0.0, 0.0, 0.0), (0.0, s, 0.0), (0.0, 0.0, s), red)
    scene.add_rectangle((s, 0.0, 0.0), (0.0, 0.0, s), (0.0, s, 0.0), green)

    scene.add_box((130.0, 0.0, 65.0), (295.0, 165.0, 230.0), white)
    scene.add_box((265.0, 0.0, 295.0), (430.0, 330.0, 460.0), white)
    scene.set_background("black")

    camera = Camera(
        look_from=(278.0, 278.0, -800.0),
        look_at=(278.0, 278.0, 0.0),
        vfov=40.0,
    )
    return scene, camera


def dispersion() -> tuple[SceneManager, Camera]:
    """Dense flint prism splitting the light of a narrow panel.

    The prism runs along z with a triangular cross-section; all faces are
    oriented outward so the dielectric sees consistent front faces.
    """
    scene = SceneManager()

    floor = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.8))
    flint = scene.add_dielectric_material(preset="SF66")
    light = scene.add_diffuse_light_material(emission=(40.0, 40.0, 40.0))

    scene.add_rectangle((-20.0, 0.0, -20.0), (0.0, 0.0, 40.0), (40.0, 0.0, 0.0), floor)

    y0 = 0.3
    a = (-1.0, y0, -1.0)
    b = (1.0, y0, -1.0)
    c = (0.0, y0 + 1.5, -1.0)
    length = (0.0, 0.0, 2.0)
    # Base, right and left faces
    scene.add_rectangle(a, (2.0, 0.0, 0.0), length, flint)
    scene.add_rectangle(b, (-1.0, 1.5, 0.0), length, flint)
    scene.add_rectangle(a, length, (1.0, 1.5, 0.0), flint)
    # End caps
    scene.add_triangle(a, c, b, flint)
    scene.add_triangle((a[0], y0, 1.0), (b[0], y0, 1.0), (c[0], c[1], 1.0), flint)

    # Narrow panel facing +x, left of the prism
    scene.add_rectangle((-6.0, 2.0, -0.25), (0.0, 1.0, 0.0), (0.0, 0.0, 0.5), light)
    scene.set_background("black")

    camera = Camera(
        look_from=(0.0, 4.0, 9.0),
        look_at=(0.5, 0.8, 0.0),
        vfov=35.0,
    )
    return scene, camera


SCENES: dict[str, Callable[[], tuple[SceneManager, Camera]]] = {
    "three_spheres": three_spheres,
    "many_spheres": many_spheres,
    "simple_light": simple_light,
    "cornell": cornell,
    "dispersion": dispersion,
}


def build_scene(name: str) -> tuple[SceneManager, Camera]:
    """Create a preset scene by name.

    Raises:
        KeyError: If the name is not one of ``SCENES``.
    """
    try:
        factory = SCENES[name]
    except KeyError:
        raise KeyError(f"Invalid scene {name!r}, available: {sorted(SCENES)}") from None
    return factory()
