import pytest

from fieldthemes.core.scanner import AUTHORING_ROOT, LOADED_CONTAINER, SceneScanner, WorkingPlacement
from fieldthemes.core.zones import FieldLayout, Zone
from fieldthemes.scene.host import MemorySceneHost


def _names(placements):
    return sorted(p.object_name for p in placements)


def test_scan_keeps_root_geometry_and_skips_helpers():
    host = MemorySceneHost()
    host.add_object("Rock", AUTHORING_ROOT, position=(5.0, 0.0, 0.0))
    host.add_object("Camera", AUTHORING_ROOT, kind="CAMERA")
    host.add_object("Sun", AUTHORING_ROOT, kind="LIGHT")
    host.add_object("Zone_BackLeft", AUTHORING_ROOT, kind="EMPTY", own_geometry=False)
    host.add_object("Hex_0_0", AUTHORING_ROOT)
    host.add_object("BenchSlot_1", AUTHORING_ROOT)
    host.add_object("EmptyLocator", AUTHORING_ROOT, kind="EMPTY", own_geometry=False)
    host.add_object("Elsewhere", "OtherCollection")

    placements = SceneScanner(host).scan()

    assert _names(placements) == ["Rock"]
    rock = placements[0]
    assert rock.zone is Zone.SIDE_RIGHT
    assert rock.position_offset == (5.0, 0.0, 0.0)
    assert rock.template is None
    assert rock.handle == host.handle_for("Rock")


def test_scan_descends_into_grouping_empties_only():
    host = MemorySceneHost()
    # Plain grouping empty at the root: its children are the placements
    host.add_object("Trees", AUTHORING_ROOT, kind="EMPTY", own_geometry=False)
    host.add_object("Pine", AUTHORING_ROOT, parent="Trees", position=(-5.0, 0.0, 0.0))
    host.add_object("Oak", AUTHORING_ROOT, parent="Trees", position=(0.0, 6.0, 0.0))
    # Mesh with parts: only the whole object is a placement
    host.add_object("House", AUTHORING_ROOT, position=(0.0, -6.0, 0.0))
    host.add_object("Door", AUTHORING_ROOT, parent="House")
    # Parts of parts are skipped as well
    host.add_object("Chimney", AUTHORING_ROOT, parent="Door")

    placements = SceneScanner(host).scan()

    assert _names(placements) == ["House", "Oak", "Pine"]
    zones = {p.object_name: p.zone for p in placements}
    assert zones == {"House": Zone.BACK_CENTER, "Oak": Zone.FRONT_CENTER, "Pine": Zone.SIDE_LEFT}


def test_scan_includes_nested_containers_and_instances():
    host = MemorySceneHost()
    host.ensure_container(LOADED_CONTAINER, parent=AUTHORING_ROOT)
    host.add_object("Rock", LOADED_CONTAINER, kind="EMPTY", template="themes/Meadow/Rock")

    placements = SceneScanner(host).scan()

    assert _names(placements) == ["Rock"]


def test_scan_of_missing_root_is_empty():
    assert SceneScanner(MemorySceneHost(), root="Nothing").scan() == []


def test_capture_records_rotation_scale_relative_to_origin():
    host = MemorySceneHost()
    h = host.add_object("Statue", AUTHORING_ROOT, position=(11.0, 0.0, 0.5), rotation=(0.0, 0.0, 90.0), scale=(2.0, 2.0, 2.0))
    scanner = SceneScanner(host, FieldLayout(origin=(10.0, 0.0, 0.0)))

    p = scanner.capture(h, "Statue")

    assert p.position_offset == (1.0, 0.0, 0.5)
    assert p.rotation == (0.0, 0.0, 90.0)
    assert p.scale == (2.0, 2.0, 2.0)
    assert p.zone is Zone.GROUND


@pytest.mark.parametrize(
    "template, is_instance, glyph",
    [("themes/Meadow/Rock", True, "✓"), (None, True, "◐"), (None, False, "○")],
)
def test_placement_status_glyph(template, is_instance, glyph):
    p = WorkingPlacement("Rock", None, template=template, is_template_instance=is_instance)
    assert p.status == glyph


def test_placement_zone_is_never_null():
    assert WorkingPlacement("Rock", None, zone=None).zone is Zone.GROUND
    assert WorkingPlacement("Rock", None, zone="front_left").zone is Zone.FRONT_LEFT
