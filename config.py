import copy
import json
import logging
import os
import sys


DEFAULTS = {
    "terrain": {
        "downsample_factor": 4,
        "calibration_window_s": 2.0,
        "debounce_interval_s": 0.2,
        "mountain_fraction": 0.2,
        "grass_fraction": 0.6,
        "peak_fraction": 0.05,
    },
    "source": {
        "kind": "synthetic",      # synthetic | recording | openni | uvc
        "device": 0,
        "width": 256,
        "height": 192,
        "fps": 30,
        "recording_path": None,
        "recording_scale": 1.0,   # recording units -> meters
        "depth_scale": 0.001,     # raw sensor units -> meters (mm streams)
    },
    "display": {
        "window_name": "Terrain View",
        "width": 768,
        "height": 576,
        "slider_steps": 1000,
        "show_fps": True,
    },
}


def setup_logging(name, level=logging.INFO):
    """Console logging for the entry points. Returns the named logger."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        root.addHandler(handler)
    root.setLevel(level)
    return logging.getLogger(name)


def _merge(base, override):
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def validate_config(config):
    t_cfg = config["terrain"]
    if int(t_cfg["downsample_factor"]) < 1:
        raise ValueError(f"downsample_factor must be >= 1, got {t_cfg['downsample_factor']}")
    for key in ("calibration_window_s", "debounce_interval_s"):
        if float(t_cfg[key]) < 0:
            raise ValueError(f"{key} must be >= 0, got {t_cfg[key]}")
    for key in ("mountain_fraction", "grass_fraction", "peak_fraction"):
        if float(t_cfg[key]) < 0:
            raise ValueError(f"{key} must be >= 0, got {t_cfg[key]}")
    if int(config["display"]["slider_steps"]) < 1:
        raise ValueError("slider_steps must be >= 1")
    return config


def load_config(path="config.json"):
    """Loads the JSON config at `path` over DEFAULTS. A missing file yields the defaults."""
    config = copy.deepcopy(DEFAULTS)
    if path is None:
        return config
    if not os.path.exists(path):
        logging.getLogger(__name__).warning(f"Config file {path} not found, using defaults.")
        return config
    with open(path, 'r') as f:
        _merge(config, json.load(f))
    return validate_config(config)
