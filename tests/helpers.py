"""Colors and packing shared by the test modules."""
SKIN = (220, 160, 130)
GRAY = (128, 128, 128)
BLACK = (0, 0, 0)


def packed(rgb, alpha=0xFF) -> int:
    """One packed 0xAARRGGBB value."""
    r, g, b = rgb
    return (alpha << 24) | (r << 16) | (g << 8) | b
