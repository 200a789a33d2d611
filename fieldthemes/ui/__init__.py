# Field Themes UI module

# Lazy import inside register to avoid importing bpy-dependent modules during offline tests

def register():
    """Register UI components."""
    from . import operators, panels, preferences

    preferences.register()
    panels.register()
    operators.register()


def unregister():
    """Unregister UI components."""
    from . import operators, panels, preferences

    operators.unregister()
    panels.unregister()
    preferences.unregister()
