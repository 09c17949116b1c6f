"""Unit tests for the SceneManager.

Tests cover:
- Material registration and parameter validation
- Primitive addition, validation and dangling material ids
- Convenience methods (add_*_sphere)
- Backgrounds
- Commit semantics (build, ensure_built, staleness)
- Scene serialization (to_dict, from_dict)
"""

import numpy as np
import pytest


@pytest.fixture
def fresh_scene():
    """Create a fresh SceneManager for each test."""
    from prism.scene.manager import SceneManager

    scene = SceneManager()
    yield scene
    scene.clear()


class TestMaterialRegistration:
    """Tests for material registration."""

    def test_ids_are_sequential_across_types(self, fresh_scene):
        """Test that material ids form one space shared by every type."""
        id0 = fresh_scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
        id1 = fresh_scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.0)
        id2 = fresh_scene.add_dielectric_material(preset="SF66")
        id3 = fresh_scene.add_diffuse_light_material(emission=(10.0, 10.0, 10.0))

        assert (id0, id1, id2, id3) == (0, 1, 2, 3)
        assert fresh_scene.get_material_count() == 4

    def test_material_info(self, fresh_scene):
        from prism.scene.manager import MaterialType

        mat_id = fresh_scene.add_metal_material(albedo=(0.7, 0.6, 0.5), fuzz=0.25)
        info = fresh_scene.get_material_info(mat_id)

        assert info.material_type == MaterialType.METAL
        assert info.params["fuzz"] == 0.25
        assert fresh_scene.get_material_info(99) is None

    @pytest.mark.parametrize(
        "albedo",
        [(1.2, 0.5, 0.5), (-0.1, 0.5, 0.5), (0.5, 0.5), (float("nan"), 0.5, 0.5)],
    )
    def test_invalid_albedo(self, fresh_scene, albedo):
        """Test that albedo components must lie in [0, 1]."""
        from prism.errors import SceneDefinitionError

        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_lambertian_material(albedo=albedo)

    def test_invalid_fuzz(self, fresh_scene):
        from prism.errors import SceneDefinitionError

        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_metal_material(albedo=(0.5, 0.5, 0.5), fuzz=1.5)

    def test_negative_emission(self, fresh_scene):
        from prism.errors import SceneDefinitionError

        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_diffuse_light_material(emission=(1.0, -1.0, 1.0))

    def test_emission_may_exceed_one(self, fresh_scene):
        mat_id = fresh_scene.add_diffuse_light_material(emission=(15.0, 15.0, 15.0))
        assert fresh_scene.get_material_info(mat_id).params["emission"] == (15.0, 15.0, 15.0)

    def test_dielectric_parameters(self, fresh_scene):
        """Test Cauchy coefficient validation."""
        from prism.errors import SceneDefinitionError

        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_dielectric_material(cauchy=(0.9, 0.01))
        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_dielectric_material(cauchy=(1.5, -0.01))
        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_dielectric_material(preset="UNOBTAINIUM")
        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_dielectric_material(cauchy=(1.5, 0.0), preset="BK7")
        assert fresh_scene.get_material_count() == 0

    def test_texture_reference(self, fresh_scene):
        """Test that a Lambertian material may only name an existing texture."""
        from prism.errors import SceneDefinitionError
        from prism.materials.texture import checker_image

        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5), texture_id=0)

        tex = fresh_scene.add_texture(checker_image())
        mat_id = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5), texture_id=tex)
        assert fresh_scene.get_material_info(mat_id).params["texture_id"] == tex

    def test_invalid_texture_image(self, fresh_scene):
        from prism.errors import SceneDefinitionError

        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_texture(np.zeros((4, 4)))
        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_texture(np.full((4, 4, 3), 2.0))


class TestPrimitives:
    """Tests for primitive addition."""

    def test_add_each_primitive(self, fresh_scene):
        from prism.scene.intersection import PrimitiveType

        mat = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        ids = [
            fresh_scene.add_sphere((0, 0, 0), 1.0, mat),
            fresh_scene.add_box((0, 0, 0), (1, 1, 1), mat),
            fresh_scene.add_rectangle((0, 0, 0), (1, 0, 0), (0, 1, 0), mat),
            fresh_scene.add_triangle((0, 0, 0), (1, 0, 0), (0, 1, 0), mat),
        ]
        assert ids == [0, 1, 2, 3]
        assert [p.primitive_type for p in fresh_scene.primitives] == [
            PrimitiveType.SPHERE,
            PrimitiveType.BOX,
            PrimitiveType.RECTANGLE,
            PrimitiveType.TRIANGLE,
        ]

    def test_dangling_material_id(self, fresh_scene):
        """Test that primitives must reference a registered material."""
        from prism.errors import SceneDefinitionError

        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_sphere((0, 0, 0), 1.0, 0)
        mat = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_sphere((0, 0, 0), 1.0, mat + 1)
        with pytest.raises(SceneDefinitionError):
            fresh_scene.add_sphere((0, 0, 0), 1.0, -1)

    @pytest.mark.parametrize(
        "call",
        [
            lambda s, m: s.add_sphere((0, 0, 0), 0.0, m),
            lambda s, m: s.add_sphere((0, 0), 1.0, m),
            lambda s, m: s.add_box((0, 0, 0), (1, 0, 1), m),
            lambda s, m: s.add_rectangle((0, 0, 0), (1, 0, 0), (2, 0, 0), m),
            lambda s, m: s.add_triangle((0, 0, 0), (1, 1, 1), (2, 2, 2), m),
            lambda s, m: s.add_triangle((0, 0, 0), (1, 0, 0), (0, 1, 0), m, uv0=(0.0,)),
        ],
    )
    def test_malformed_geometry(self, fresh_scene, call):
        """Test that degenerate geometry is rejected before anything is stored."""
        from prism.errors import SceneDefinitionError

        mat = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        with pytest.raises(SceneDefinitionError):
            call(fresh_scene, mat)
        assert fresh_scene.get_primitive_count() == 0

    def test_negative_radius_allowed(self, fresh_scene):
        mat = fresh_scene.add_dielectric_material(preset="BK7")
        fresh_scene.add_sphere((0, 0, 0), -0.4, mat)
        assert fresh_scene.primitives[0].params["radius"] == -0.4

    def test_convenience_spheres(self, fresh_scene):
        prim0, mat0 = fresh_scene.add_lambertian_sphere((0, 0, 0), 1.0, (0.5, 0.5, 0.5))
        prim1, mat1 = fresh_scene.add_metal_sphere((2, 0, 0), 1.0, (0.9, 0.9, 0.9), 0.1)
        prim2, mat2 = fresh_scene.add_dielectric_sphere((4, 0, 0), 1.0, preset="WATER")
        assert (prim0, prim1, prim2) == (0, 1, 2)
        assert (mat0, mat1, mat2) == (0, 1, 2)

    def test_bounding_boxes(self, fresh_scene):
        mat = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_sphere((1, 2, 3), 0.5, mat)
        fresh_scene.add_triangle((0, 0, 0), (2, 0, 0), (0, 3, 0), mat)

        boxes = fresh_scene.bounding_boxes()
        np.testing.assert_allclose(boxes[0].minimum, [0.5, 1.5, 2.5])
        np.testing.assert_allclose(boxes[1].maximum, [2, 3, 0])


class TestBackground:
    """Tests for set_background."""

    def test_default_is_sky(self, fresh_scene):
        from prism.scene.manager import BackgroundType

        assert fresh_scene.background.kind == BackgroundType.SKY

    def test_uniform_background(self, fresh_scene):
        from prism.scene.manager import BackgroundType

        fresh_scene.set_background("uniform", (0.2, 0.3, 0.4))
        assert fresh_scene.background.kind == BackgroundType.UNIFORM
        assert fresh_scene.background.color == (0.2, 0.3, 0.4)

    def test_unknown_background(self, fresh_scene):
        from prism.errors import SceneDefinitionError

        with pytest.raises(SceneDefinitionError):
            fresh_scene.set_background("plaid")


class TestCommit:
    """Tests for build and staleness tracking."""

    def test_build_uploads_counts(self, fresh_scene):
        from prism.materials.lambertian import get_lambertian_material_count
        from prism.materials.metal import get_metal_material_count
        from prism.scene.intersection import get_node_count, get_primitive_count
        from prism.scene.manager import has_active_scene

        mat = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_metal_material(albedo=(0.5, 0.5, 0.5))
        for i in range(5):
            fresh_scene.add_sphere((i, 0, 0), 0.4, mat)
        fresh_scene.build()

        assert fresh_scene.is_active
        assert has_active_scene()
        assert get_primitive_count() == 5
        assert get_node_count() > 0
        assert get_lambertian_material_count() == 1
        assert get_metal_material_count() == 1

    def test_modification_makes_scene_stale(self, fresh_scene):
        mat = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.build()
        assert fresh_scene.is_active

        fresh_scene.add_sphere((0, 0, 0), 1.0, mat)
        assert not fresh_scene.is_active

        fresh_scene.ensure_built()
        assert fresh_scene.is_active

    def test_building_another_scene_deactivates(self, fresh_scene):
        from prism.scene.manager import SceneManager

        other = SceneManager()
        fresh_scene.build()
        other.build()
        assert other.is_active
        assert not fresh_scene.is_active

    def test_rebuild_does_not_duplicate_materials(self, fresh_scene):
        from prism.materials.lambertian import get_lambertian_material_count

        fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.build()
        fresh_scene.build()
        assert get_lambertian_material_count() == 1


class TestSerialization:
    """Tests for to_dict and from_dict."""

    def _populated(self):
        from prism.materials.texture import checker_image
        from prism.scene.manager import SceneManager

        scene = SceneManager()
        tex = scene.add_texture(checker_image(width=8, height=4, squares=(2, 2)))
        checker = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5), texture_id=tex)
        metal = scene.add_metal_material(albedo=(0.9, 0.8, 0.7), fuzz=0.2)
        glass = scene.add_dielectric_material(cauchy=(1.6, 0.01), tint=(0.9, 1.0, 0.9))
        light = scene.add_diffuse_light_material(emission=(5.0, 5.0, 5.0))
        scene.add_sphere((0, 1, 0), 1.0, checker)
        scene.add_box((2, 0, 0), (3, 1, 1), metal)
        scene.add_rectangle((0, 5, 0), (1, 0, 0), (0, 0, 1), light)
        scene.add_triangle((0, 0, 3), (1, 0, 3), (0, 1, 3), glass, uv1=(0.5, 0.0))
        scene.set_background("uniform", (0.1, 0.1, 0.1))
        return scene

    def test_round_trip(self):
        from prism.scene.manager import SceneManager

        original = self._populated()
        data = original.to_dict()

        copy = SceneManager()
        copy.from_dict(data)

        assert copy.to_dict() == data
        assert copy.get_material_count() == 4
        assert copy.get_primitive_count() == 4
        np.testing.assert_allclose(copy.textures[0], original.textures[0])

    def test_dict_is_plain_data(self):
        """Test that the exported dictionary only holds JSON types."""
        import json

        data = self._populated().to_dict()
        assert json.loads(json.dumps(data)) == data

    def test_unknown_material_type(self, fresh_scene):
        from prism.errors import SceneDefinitionError

        with pytest.raises(SceneDefinitionError):
            fresh_scene.from_dict({"materials": [{"type": "velvet"}]})

    def test_unknown_primitive_type(self, fresh_scene):
        from prism.errors import SceneDefinitionError

        data = {
            "materials": [{"type": "lambertian", "albedo": [0.5, 0.5, 0.5]}],
            "primitives": [{"type": "torus", "material_id": 0}],
        }
        with pytest.raises(SceneDefinitionError):
            fresh_scene.from_dict(data)

    def test_rejected_config_leaves_scene_unchanged(self, fresh_scene):
        """Test that a configuration failing halfway keeps the previous scene intact."""
        from prism.errors import SceneDefinitionError

        grey = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_sphere((0.0, 0.0, -2.0), 0.5, grey)
        fresh_scene.build()
        before = fresh_scene.to_dict()

        data = {
            "materials": [{"type": "metal", "albedo": [0.9, 0.9, 0.9]}],
            "primitives": [
                {"type": "sphere", "material_id": 0, "center": [0, 0, 0], "radius": 1.0},
                {"type": "sphere", "material_id": 0, "center": [0, 3, 0], "radius": 0.0},
            ],
        }
        with pytest.raises(SceneDefinitionError):
            fresh_scene.from_dict(data)

        assert fresh_scene.to_dict() == before
        assert fresh_scene.is_active

    @pytest.mark.parametrize(
        "data",
        [
            {"materials": [{"type": "lambertian"}]},
            {"materials": [{"type": "diffuse_light"}]},
            {
                "materials": [{"type": "lambertian", "albedo": [0.5, 0.5, 0.5]}],
                "primitives": [{"type": "sphere", "material_id": 0, "radius": 1.0}],
            },
        ],
    )
    def test_missing_fields(self, fresh_scene, data):
        from prism.errors import SceneDefinitionError

        fresh_scene.add_lambertian_material(albedo=(0.2, 0.2, 0.2))
        with pytest.raises(SceneDefinitionError, match="missing field"):
            fresh_scene.from_dict(data)
        assert fresh_scene.get_material_count() == 1
