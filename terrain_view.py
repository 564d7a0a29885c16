"""
terrain_view.py - live false-color terrain from a depth stream
==============================================================
Calibrates band thresholds over the first couple of seconds, then colors
every frame as water / grass / mountain / snow. The three trackbars move the
ground level and the band widths.

Controls:
    q / ESC - Quit
    c       - Recalibrate
    s       - Save screenshot
    p       - Save depth histogram of the current frame
"""
import argparse
import logging
import sys
import time

import cv2

import config as cfg
from camera import open_depth_source
from display import TerrainWindow
from pipeline import TerrainPipeline


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Terrain View (depth to false-color terrain)")
    parser.add_argument("--config", default="config.json", help="JSON config file")
    parser.add_argument("--source", choices=["synthetic", "recording", "openni", "uvc"],
                        help="Depth source (overrides config)")
    parser.add_argument("--recording", help=".npy depth recording for --source recording")
    parser.add_argument("--device", type=int, help="Camera index for --source uvc")
    parser.add_argument("--factor", type=int, help="Downsample factor")
    parser.add_argument("--window", type=float, help="Calibration window in seconds")
    parser.add_argument("--headless", action="store_true", help="No window; write the last image to --output")
    parser.add_argument("--frames", type=int, default=90, help="Frames to process in headless mode")
    parser.add_argument("--output", default="terrain.png", help="Image written in headless mode")
    parser.add_argument("--plot", help="Write a depth histogram with band edges to this PNG on exit")
    parser.add_argument("--debug", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def apply_overrides(config, args):
    s_cfg, t_cfg = config["source"], config["terrain"]
    if args.source:
        s_cfg["kind"] = args.source
    if args.recording:
        s_cfg["recording_path"] = args.recording
        if not args.source:
            s_cfg["kind"] = "recording"
    if args.device is not None:
        s_cfg["device"] = args.device
    if args.factor is not None:
        t_cfg["downsample_factor"] = args.factor
    if args.window is not None:
        t_cfg["calibration_window_s"] = args.window
    return cfg.validate_config(config)


def save_image(path, image):
    cv2.imwrite(path, cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA))


def run_headless(pipeline, source, args, logger):
    last = {}
    pipeline.on_image_ready = lambda image: last.__setitem__("image", image)
    pipeline.start_calibration()

    seen = 0
    processed = 0
    depth = None
    deadline = time.monotonic() + args.frames / max(source.fps, 1) + pipeline.calibrator.window + 5.0
    while processed < args.frames or pipeline.calibrator.running:
        if time.monotonic() > deadline:
            logger.warning("Timed out waiting for frames.")
            break
        ret, frame = source.read()
        if not ret or source.frame_count == seen:
            time.sleep(0.005)
            continue
        seen = source.frame_count
        depth = frame
        pipeline.on_frame(depth, depth.shape[1], depth.shape[0])
        processed += 1

    if "image" not in last:
        logger.error("No image produced.")
        return 1, depth
    save_image(args.output, last["image"])
    logger.info(f"Saved {args.output} after {processed} frames")
    return 0, depth


def run_window(pipeline, source, config, args, logger):
    window = TerrainWindow(config["display"], on_slider=pipeline.set_threshold)
    pipeline.on_image_ready = window.update_image
    pipeline.on_calibrated = window.configure_sliders
    pipeline.on_label_update = window.update_label
    window.open()
    pipeline.start_calibration()

    seen = 0
    depth = None
    fps = 0.0
    prev_time = time.time()
    try:
        while True:
            ret, frame = source.read()
            if ret and source.frame_count != seen:
                seen = source.frame_count
                depth = frame
                pipeline.on_frame(depth, depth.shape[1], depth.shape[0])
                curr_time = time.time()
                fps = 0.9 * fps + 0.1 / (curr_time - prev_time + 1e-5)
                prev_time = curr_time

            key = window.render(fps)
            if key == ord('q') or key == 27:
                break
            elif key == ord('c'):
                logger.info("Recalibrating...")
                pipeline.recalibrate()
            elif key == ord('s'):
                image = pipeline.recolor()
                if image is not None:
                    fn = f"terrain_{int(time.time())}.png"
                    save_image(fn, image)
                    logger.info(f"Saved {fn}")
            elif key == ord('p') and depth is not None:
                from plots import plot_depth_histogram
                plot_depth_histogram(depth, pipeline.thresholds, f"histogram_{int(time.time())}.png")
    except KeyboardInterrupt:
        logger.warning("Interrupted.")
    finally:
        window.close()
    return 0, depth


def main(argv=None):
    args = parse_args(argv)
    logger = cfg.setup_logging("TerrainView", logging.DEBUG if args.debug else logging.INFO)

    try:
        config = apply_overrides(cfg.load_config(args.config), args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    try:
        source = open_depth_source(config["source"]).start()
    except ValueError as e:
        logger.error(str(e))
        return 2
    if not source.opened:
        logger.error("Depth source could not be started.")
        return 1

    pipeline = TerrainPipeline(config["terrain"])
    try:
        if args.headless:
            code, depth = run_headless(pipeline, source, args, logger)
        else:
            code, depth = run_window(pipeline, source, config, args, logger)
    finally:
        pipeline.shutdown()
        source.stop()

    if args.plot and depth is not None:
        from plots import plot_depth_histogram
        plot_depth_histogram(depth, pipeline.thresholds, args.plot)
    return code


if __name__ == "__main__":
    sys.exit(main())
