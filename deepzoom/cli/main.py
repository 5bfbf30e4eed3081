"""
Command-line interface for deep-zoom rendering.

This module provides commands to render views to image files, inspect
reference orbits, benchmark backends and explore interactively.
"""

import click
import sys
from pathlib import Path
from typing import Optional, Tuple
import logging
import time

import numpy as np

from .. import __version__
from ..api import BACKENDS, DeepZoomRenderer, DeepZoomViewer, RenderConfig
from ..core.orbit import DETAIL, WorldPoint, evaluate_orbit, is_valid_reference
from ..core.perturbation import perturbation_dwell
from ..core.reference import ReferenceOrbitManager
from ..io.config import ConfigManager, load_config_from_args
from ..rendering.coloring import ColoringEngine

logger = logging.getLogger(__name__)


def _parse_point(text: str) -> Tuple[float, float]:
    try:
        parts = [float(x.strip()) for x in text.split(',')]
    except ValueError:
        raise click.BadParameter(f"Invalid point '{text}'. Use 'real,imag'")
    if len(parts) != 2:
        raise click.BadParameter(f"Invalid point '{text}'. Use 'real,imag'")
    return parts[0], parts[1]


def _fail(ctx, error: Exception):
    click.echo(f"Error: {error}", err=True)
    if ctx.obj.get('verbose'):
        import traceback
        traceback.print_exc()
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--config', type=click.Path(exists=True), help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, config, verbose, quiet):
    """
    deepzoom - perturbation-based deep-zoom Mandelbrot renderer.
    """
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"deepzoom v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)

    ctx.ensure_object(dict)
    ctx.obj['config_file'] = config
    ctx.obj['verbose'] = verbose


def _build_config(ctx, bookmark: Optional[str], **overrides) -> RenderConfig:
    render_config, _ = load_config_from_args(ctx.obj.get('config_file'), bookmark)

    center = overrides.pop('center', None)
    if center:
        render_config.center_x, render_config.center_y = _parse_point(center)

    for key, value in overrides.items():
        if value is not None:
            setattr(render_config, key, value)

    render_config.validate()
    return render_config


@main.command()
@click.argument('output', type=click.Path())
@click.option('--center', type=str, help='View center "real,imag"')
@click.option('--zoom', type=float, help='Half-extent of the shorter canvas side')
@click.option('--bookmark', '-b', help='Start from a named bookmark')
@click.option('--width', '-w', type=int, help='Image width')
@click.option('--height', '-h', type=int, help='Image height')
@click.option('--palette', help='Color palette name')
@click.option('--backend', type=click.Choice(BACKENDS), help='Evaluation backend')
@click.option('--processes', 'num_processes', type=int, help='Worker processes for multiprocessing')
@click.option('--seed', type=int, help='Seed for reference point sampling')
@click.option('--raw', is_flag=True, help='Also save the dwell field (.npz)')
@click.pass_context
def render(ctx, output, bookmark, raw, **kwargs):
    """
    Render a single view to an image.

    OUTPUT: Output image file path (.png, .jpg)
    """
    try:
        config = _build_config(ctx, bookmark, **kwargs)
        if raw:
            config.save_raw_data = True
        viewer = DeepZoomViewer(config)

        reference = viewer.reference_point
        click.echo(f"Rendering ({config.center_x}, {config.center_y}) zoom={config.zoom:g} "
                   f"at {config.width}x{config.height}...")
        click.echo(f"Reference point: ({reference.x}, {reference.y})")

        start_time = time.time()
        viewer.render(Path(output))
        click.echo(f"Render complete: {time.time() - start_time:.2f}s")
        click.echo(f"Saved: {output}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.argument('x', type=float)
@click.argument('y', type=float)
@click.option('--zoom', type=float, default=1.5, show_default=True,
              help='Zoom bounding the reference search radius')
@click.option('--seed', type=int, help='Seed for reference point sampling')
@click.option('--show-orbit', is_flag=True, help='Print the orbit samples')
@click.pass_context
def orbit(ctx, x, y, zoom, seed, show_orbit):
    """
    Evaluate a point directly and search for a reference near it.

    X, Y: Point in the complex plane
    """
    try:
        target = WorldPoint(x, y)
        result = evaluate_orbit(target, DETAIL)

        if result.escape_iteration is None:
            click.echo(f"({x}, {y}) stays bounded for {DETAIL} iterations")
        else:
            click.echo(f"({x}, {y}) escapes at iteration {result.escape_iteration}")

        manager = ReferenceOrbitManager(rng=np.random.default_rng(seed))
        manager.update_reference(target, zoom)
        reference = manager.point
        click.echo(f"Reference point: ({reference.x}, {reference.y}) "
                   f"distance={reference.distance_to(target):.3g} "
                   f"valid={is_valid_reference(reference)}")

        dwell = perturbation_dwell(target - reference, manager.orbit)
        color = ColoringEngine().color_for_dwell(dwell)
        if dwell.in_set:
            click.echo(f"Perturbation: in set, color {color.to_uint8_tuple()}")
        else:
            click.echo(f"Perturbation: dwell {dwell.dwell:.4f} at iteration {dwell.iteration}, "
                       f"color {color.to_uint8_tuple()}")

        if show_orbit:
            for n, z in enumerate(manager.orbit):
                click.echo(f"  Z[{n:2d}] = {z.real:+.17g} {z.imag:+.17g}i")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.option('--size', type=str, default='800x600', help='Benchmark image size (widthxheight)')
@click.option('--bookmark', '-b', default='seahorse-valley', help='Location to benchmark')
@click.pass_context
def benchmark(ctx, size, bookmark):
    """
    Compare evaluation backends on one frame.
    """
    try:
        try:
            width, height = map(int, size.split('x'))
        except ValueError:
            raise click.BadParameter("Invalid size format. Use 'widthxheight'")

        config = _build_config(ctx, bookmark, width=width, height=height)
        frame = DeepZoomViewer(config).frame()

        click.echo(f"Image size: {width}x{height} ({width*height:,} pixels), bookmark={bookmark}")

        for backend in ('numpy', 'numba', 'multiprocessing'):
            config.backend = backend
            renderer = DeepZoomRenderer(config)
            if backend == 'numba':
                # Warm up JIT compiler
                renderer.evaluate(frame)

            start_time = time.time()
            renderer.evaluate(frame)
            elapsed = time.time() - start_time
            click.echo(f"  {backend.upper()}: {elapsed:.3f}s "
                       f"({width * height / max(elapsed, 1e-9):,.0f} pixels/sec)")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.option('--output', '-o', type=click.Path(), default='deepzoom.yaml',
              help='Output file path (.yaml or .json)')
@click.pass_context
def init_config(ctx, output):
    """
    Create a configuration template file.
    """
    try:
        ConfigManager().export_config_template(Path(output))
        click.echo(f"Configuration template created: {output}")
    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.argument('config_file', type=click.Path(exists=True))
@click.pass_context
def validate_config(ctx, config_file):
    """Validate a configuration file."""
    try:
        ConfigManager().load_config(config_file)
        click.echo(f"Configuration file is valid: {config_file}")
    except ValueError as e:
        click.echo(f"Configuration file has errors: {e}", err=True)
        sys.exit(1)


@main.command()
@click.pass_context
def list_bookmarks(ctx):
    """List available bookmarks."""
    try:
        _, manager = load_config_from_args(ctx.obj.get('config_file'))
        click.echo("Available bookmarks:")
        for name in manager.list_bookmarks():
            bookmark = manager.get_bookmark(name)
            click.echo(f"  {name}: ({bookmark.x}, {bookmark.y}) zoom={bookmark.zoom:g}")
            if ctx.obj.get('verbose') and bookmark.description:
                click.echo(f"    {bookmark.description}")
    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.pass_context
def list_palettes(ctx):
    """List available color palettes."""
    click.echo("Available color palettes:")
    for name in ColoringEngine().list_palettes():
        click.echo(f"  {name}")


@main.command()
@click.option('--bookmark', '-b', help='Start from a named bookmark')
@click.option('--width', '-w', type=int, default=800, help='Window width')
@click.option('--height', '-h', type=int, default=600, help='Window height')
@click.option('--palette', help='Color palette name')
@click.pass_context
def explore(ctx, bookmark, width, height, palette):
    """
    Interactive exploration: drag to pan, scroll to zoom.
    """
    try:
        try:
            import tkinter as tk
            from tkinter import filedialog, ttk
            from PIL import Image, ImageTk
        except ImportError as e:
            click.echo(f"Error: GUI dependencies not available: {e}", err=True)
            sys.exit(1)

        config = _build_config(ctx, bookmark, width=width, height=height, palette=palette)
        viewer = DeepZoomViewer(config)
        controller = viewer.controller
        renderer = viewer.renderer

        root = tk.Tk()
        root.title("deepzoom explorer")

        canvas = tk.Canvas(root, width=width, height=height, bg='black', highlightthickness=0)
        canvas.pack(side=tk.LEFT, padx=5, pady=5)

        control_frame = ttk.Frame(root)
        control_frame.pack(side=tk.RIGHT, fill=tk.Y, padx=5, pady=5)
        status_var = tk.StringVar()

        state = {'photo': None, 'pending': None}

        def draw():
            frame = state['pending']
            state['pending'] = None
            if frame is None:
                return
            rgb_image = renderer.draw(frame)
            pil_image = Image.fromarray((rgb_image * 255).astype('uint8'))
            state['photo'] = ImageTk.PhotoImage(pil_image)
            canvas.delete("all")
            canvas.create_image(0, 0, anchor=tk.NW, image=state['photo'])

            info = viewer.get_exploration_info()
            rx, ry = info['reference_canvas']
            canvas.create_line(rx - 5, ry, rx + 6, ry, fill='white')
            canvas.create_line(rx, ry - 5, rx, ry + 6, fill='white')

            status_var.set(f"Center: {info['center'][0]:.15g}, {info['center'][1]:.15g}\n"
                           f"Zoom: {info['zoom']:.3e}\n"
                           f"Reference offset: {info['reference_distance']:.2e}")

        def schedule(frame):
            # Coalesce bursts of events into one redraw
            if state['pending'] is None:
                root.after_idle(draw)
            state['pending'] = frame

        viewer.add_render_callback(schedule)

        canvas.bind("<ButtonPress-1>", lambda e: controller.pointer_down(0, e.x, e.y))
        canvas.bind("<B1-Motion>", lambda e: controller.pointer_move(0, e.x, e.y))
        canvas.bind("<ButtonRelease-1>", lambda e: controller.pointer_up(0))
        canvas.bind("<MouseWheel>", lambda e: controller.wheel(e.x, e.y, -e.delta / 120 * 100))
        canvas.bind("<Button-4>", lambda e: controller.wheel(e.x, e.y, -100))
        canvas.bind("<Button-5>", lambda e: controller.wheel(e.x, e.y, 100))

        def save_image():
            filename = filedialog.asksaveasfilename(
                defaultextension=".png",
                filetypes=[("PNG files", "*.png"), ("All files", "*.*")]
            )
            if filename:
                viewer.render(Path(filename))
                click.echo(f"Saved: {filename}")

        ttk.Button(control_frame, text="Home",
                   command=lambda: viewer.go_to_bookmark('home')).pack(pady=2)
        ttk.Button(control_frame, text="Save Image", command=save_image).pack(pady=2)
        ttk.Label(control_frame, textvariable=status_var, wraplength=220).pack(pady=10)
        ttk.Label(control_frame, text="Drag to pan\nScroll to zoom", wraplength=220).pack(pady=5)

        viewer.request_render()
        click.echo("Starting interactive explorer...")
        root.mainloop()

    except Exception as e:
        _fail(ctx, e)


if __name__ == '__main__':
    main()
