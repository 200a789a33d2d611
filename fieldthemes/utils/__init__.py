# Field Themes Utils module


def register() -> None:
    """Register utility components."""
    from . import blender_helpers

    blender_helpers.register()


def unregister() -> None:
    """Unregister utility components."""
    from . import blender_helpers

    blender_helpers.unregister()
