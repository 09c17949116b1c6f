"""Exception types raised while building scenes."""


class SceneDefinitionError(ValueError):
    """Raised when a scene contains malformed geometry or materials.

    The scene builder raises this before anything is uploaded to the render
    fields, so a failed call leaves the previously committed scene intact.
    """
