# Field Themes Core module
#
# Host-independent authoring logic. Nothing here registers Blender classes; submodules
# are imported directly (fieldthemes.core.controller, ...).


def register() -> None:
    """Register core components."""
    pass


def unregister() -> None:
    """Unregister core components."""
    from . import session

    session.reset_controller()
