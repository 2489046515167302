#!/usr/bin/env python3
"""
Fortress Vox Web Interface

A simple Gradio-based web UI for exporting fortress snapshots to
MagicaVoxel scenes.

Run with: python app.py
Then open http://localhost:7860 in your browser
"""

import sys
from pathlib import Path
import tempfile

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import gradio as gr
from fortress_vox import ExportParams, Month, Progress, SnapshotSource, TimeOfTheYear, run_export_thread
from fortress_vox.errors import SourceError

CURRENT_TIME = "Current game time"


def probe_snapshot(snapshot_path):
    """Suggest the elevation range of an uploaded snapshot."""
    if snapshot_path is None:
        return gr.update(), gr.update(), "Upload a snapshot to start."
    try:
        source = SnapshotSource.load(snapshot_path)
    except SourceError as e:
        return gr.update(), gr.update(), f"**Error:** {e}"

    info = source.map_info()
    offset = source.elevation_offset()
    low = info.block_pos_z + offset
    high = info.block_pos_z + info.block_size_z - 1 + offset
    current = source.current_elevation()
    text = f"""## {info.world_name or 'Fortress'}

| Property | Value |
|----------|-------|
| Map Size | {info.block_size_x} x {info.block_size_y} blocks |
| Elevations | {low} to {high} |
| Current Elevation | {current} |
| Materials | {len(source.materials()):,} |
"""
    return max(low, current - 10), min(high, current), text


def export_snapshot(snapshot_path, elevation_low, elevation_high, month_name):
    """
    Run the export in the background worker, streaming its progress.

    Yields status text and, once done, the path of the scene for download.
    """
    if snapshot_path is None:
        yield "Please upload a snapshot first.", None
        return

    try:
        source = SnapshotSource.load(snapshot_path)
    except SourceError as e:
        yield f"**Error:** {e}", None
        return

    if month_name == CURRENT_TIME:
        time_of_year = TimeOfTheYear.current()
    else:
        time_of_year = TimeOfTheYear.month(month_name)

    export_dir = tempfile.mkdtemp(prefix="fortress_")
    params = ExportParams(
        int(elevation_low),
        int(elevation_high),
        time_of_year,
        Path(export_dir) / "fortress.vox",
    )

    events, cancel, thread = run_export_thread(params, source)
    finished = False
    try:
        while True:
            event = events.get()
            if isinstance(event, Progress.Done):
                finished = True
                yield f"## Export Complete!\n\nWritten `{event.path.name}`.", str(event.path)
                return
            if isinstance(event, Progress.Error):
                finished = True
                yield f"**Error:** {event.detail}", None
                return
            if isinstance(event, (Progress.Start, Progress.Update)):
                current = getattr(event, "current", 0)
                yield f"{event.message}... {current}/{event.total}", None
            else:
                yield f"{event.message}...", None
    finally:
        # closed by the cancel button
        if not finished:
            cancel.set()
            thread.join()


# Build the Gradio interface
with gr.Blocks(title="Fortress Vox") as app:

    gr.Markdown("""
    # Fortress Vox
    ### Export a Fortress to MagicaVoxel

    Upload a fortress snapshot, pick the elevations and the season, and download the scene!
    """)

    with gr.Row():
        # Left column - Input
        with gr.Column(scale=1):
            gr.Markdown("### Snapshot")

            snapshot_input = gr.File(
                label="Fortress snapshot (.json)",
                file_types=[".json"],
                type="filepath"
            )

            gr.Markdown("### Settings")

            elevation_low = gr.Number(value=-10, precision=0, label="Lowest elevation")
            elevation_high = gr.Number(value=0, precision=0, label="Highest elevation")

            month = gr.Dropdown(
                choices=[CURRENT_TIME] + [m.display_name for m in Month],
                value=CURRENT_TIME,
                label="Time of the year"
            )

            with gr.Row():
                export_btn = gr.Button("Export", variant="primary")
                cancel_btn = gr.Button("Cancel")

        # Right column - Results
        with gr.Column(scale=1):
            status_output = gr.Markdown(value="Upload a snapshot to start.")
            vox_output = gr.File(label="VOX (MagicaVoxel)")

            gr.Markdown("""
            ---
            **Tips:**
            - Elevations are the ones displayed in game
            - Hidden terrain is on its own layer, hidden by default
            - Each month shows different plant growths
            """)

    # Wire up events
    snapshot_input.change(
        fn=probe_snapshot,
        inputs=[snapshot_input],
        outputs=[elevation_low, elevation_high, status_output]
    )

    export_event = export_btn.click(
        fn=export_snapshot,
        inputs=[snapshot_input, elevation_low, elevation_high, month],
        outputs=[status_output, vox_output]
    )

    cancel_btn.click(fn=None, cancels=[export_event])


if __name__ == "__main__":
    print("\n" + "="*60)
    print("Fortress Vox Web Interface")
    print("="*60)
    print("\nStarting server...")
    print("Open http://localhost:7860 in your browser\n")

    app.launch(
        server_name="0.0.0.0",
        server_port=7860,
        share=False
    )
