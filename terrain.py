import numpy as np

# RGB at full band saturation
WATER = (0, 0, 255)
GRASS = (0, 255, 0)
MOUNTAIN = (153, 102, 51)
SNOW = (255, 255, 255)


def downsample(buffer, width, height, factor=4):
    """
    Strides a row-major depth buffer by `factor` in both directions.

    Returns a float32 grid of shape (height // factor, width // factor) whose
    cell (x, y) is the source sample at (x * factor, y * factor). Source
    indices past width * height, or past the end of a short buffer, read as 0.
    """
    if factor < 1:
        raise ValueError(f"downsample factor must be >= 1, got {factor}")
    flat = np.asarray(buffer, dtype=np.float32).reshape(-1)
    out_w, out_h = width // factor, height // factor
    grid = np.zeros((out_h, out_w), dtype=np.float32)
    if out_w == 0 or out_h == 0:
        return grid

    rows = np.arange(out_h) * factor
    cols = np.arange(out_w) * factor
    idx = rows[:, None] * width + cols[None, :]
    valid = (idx < width * height) & (idx < flat.size)
    grid[valid] = flat[idx[valid]]
    return grid


def _band_fraction(depth, lower, extent):
    """Position of `depth` inside a band of width `extent` starting at `lower`, in [0, 1]."""
    if extent == 0:
        return np.ones_like(depth)
    with np.errstate(invalid='ignore', divide='ignore', over='ignore'):
        t = (depth - lower) / extent
    t = np.clip(t, 0.0, 1.0)
    t[~np.isfinite(t)] = 1.0
    return t


def colorize(grid, thresholds):
    """
    Maps a depth grid to an RGBA image using four bands, first match wins:

        d > ground                   water, solid blue
        d > ground - below           grass, black -> green toward the ground
        d > ground - below - above   mountain, black -> brown
        otherwise                    snow, solid white

    NaN depths fail every comparison and come out as snow.
    """
    depth = np.asarray(grid, dtype=np.float64)
    ground = float(thresholds.ground_level)
    below = float(thresholds.range_below)
    above = float(thresholds.range_above)
    grass_floor = ground - below
    mountain_floor = grass_floor - above

    image = np.empty(depth.shape + (4,), dtype=np.uint8)
    image[..., :3] = SNOW
    image[..., 3] = 255
    if depth.size == 0:
        return image

    with np.errstate(invalid='ignore'):
        water = depth > ground
        grass = ~water & (depth > grass_floor)
        mountain = ~water & ~grass & (depth > mountain_floor)

    image[water, :3] = WATER

    t = _band_fraction(depth[grass], grass_floor, below)
    image[grass, :3] = (t[:, None] * np.array(GRASS, dtype=np.float64)).astype(np.uint8)

    t = _band_fraction(depth[mountain], mountain_floor, above)
    image[mountain, :3] = (t[:, None] * np.array(MOUNTAIN, dtype=np.float64)).astype(np.uint8)
    return image
