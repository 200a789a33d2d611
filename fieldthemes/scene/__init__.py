# Field Themes Scene module
#
# Scene host implementations (in-memory and bpy-backed) and the zone marker preview.


def register() -> None:
    pass


def unregister() -> None:
    pass
