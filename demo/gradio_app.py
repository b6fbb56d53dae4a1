"""chip8-core Interactive Demo.

A Gradio web interface for running and inspecting CHIP-8 programs.

Usage:
    cd /path/to/chip8-core
    python demo/gradio_app.py

Features:
    - Write or load hex-word programs
    - Step-by-step execution trace
    - Final registers, stack and timers
    - Text rendering of the 64x32 display
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from chip8_core import Chip8CPU, Chip8Error


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Add 7+2": """6007        ; V0 = 7
6102        ; V1 = 2
8014        ; V0 += V1, VF = carry
0000        ; halt, V0 = 9""",

    "Subroutine": """6005 610A   ; V0 = 5, V1 = 10
2100 2100   ; call twice
0000        ; halt, V0 = 45
0x100:
8014 8014   ; V0 += V1 twice
00EE        ; return""",

    "Countdown loop": """600A        ; V0 = 10
6100        ; V1 = 0
6201        ; V2 = 1
7103        ; loop: V1 += 3
8025        ; V0 -= V2
3000        ; skip if V0 == 0
1006        ; jump loop
0000        ; halt, V1 = 30""",

    "Draw digits": """00E0        ; clear
6107 620A   ; V1 = 7 (digit), V2 = 10 (y)
6305        ; V3 = 5 (x)
F129        ; I = glyph(V1)
D325        ; draw at (V3, V2)
6108 730A   ; V1 = 8, x += 10
F129 D325   ; draw second digit
0000""",

    "Custom": ""
}

# Programs that use the font need it in memory
FONT_PROGRAMS = {"Draw digits"}


# =============================================================================
# Execution Functions
# =============================================================================

def run_program(program: str, load_font: bool, legacy_store: bool, seed: int, max_cycles: int) -> tuple:
    """Execute a hex-word program and return results.

    Args:
        program: Program text
        load_font: Write the hex digit glyphs at 0x050 before running
        legacy_store: Fx55/Fx65 increment I
        seed: Seed for RND
        max_cycles: Maximum execution cycles

    Returns:
        Tuple of (summary_text, trace_text, registers_text, display_text)
    """
    if not program.strip():
        return "Error: No program provided", "", "", ""

    try:
        cpu = Chip8CPU(seed=int(seed), max_cycles=int(max_cycles), legacy_store=legacy_store)
        if load_font:
            cpu.load_font()
        cpu.load_program(program)
    except (ValueError, Chip8Error) as e:
        return f"Load error: {e}", "", "", ""

    try:
        trace = cpu.run()
    except Chip8Error as e:
        error_msg = str(e)
        trace = cpu.get_trace()
    else:
        error_msg = None

    # Format summary
    summary = cpu.get_summary()
    summary_lines = [
        "EXECUTION SUMMARY",
        "=" * 40,
        f"Cycles: {summary['cycles']}",
        f"Halted: {'Yes' if summary['halted'] else 'No'}",
        f"Final PC: 0x{summary['pc']:03X}",
    ]
    if error_msg:
        summary_lines.append(f"\nRuntime: {error_msg}")

    summary_text = "\n".join(summary_lines)

    # Format trace
    trace_lines = [
        "EXECUTION TRACE",
        "=" * 60,
    ]
    for entry in trace[:100]:  # Limit to 100 entries
        trace_lines.append(f"\n--- Cycle {entry.cycle} (PC=0x{entry.pc:03X}) ---")
        if entry.opcode is not None:
            trace_lines.append(f"Opcode:      {entry.opcode:04X}")
        trace_lines.append(f"Decoded Key: {entry.key}")
        trace_lines.append(f"Parameters:  {entry.params}")

        pre_regs = entry.pre_state['registers']
        post_regs = entry.post_state['registers']
        changes = []
        for reg, value in pre_regs.items():
            if reg != "PC" and value != post_regs[reg]:
                changes.append(f"{reg}: {value} -> {post_regs[reg]}")
        if changes:
            trace_lines.append(f"Changes:     {', '.join(changes)}")
        if entry.error:
            trace_lines.append(f"Error:       {entry.error}")

    if len(trace) > 100:
        trace_lines.append(f"\n... ({len(trace) - 100} more entries)")

    trace_text = "\n".join(trace_lines)

    # Format registers
    regs = cpu.dump_registers()
    reg_lines = [
        "FINAL REGISTERS",
        "=" * 30,
    ]
    for reg, value in regs.items():
        marker = " *" if value != 0 else ""
        reg_lines.append(f"  {reg:>2}: {value:>5} (0x{value:02X}){marker}")

    reg_lines.append("")
    reg_lines.append("STACK / TIMERS")
    reg_lines.append("-" * 30)
    reg_lines.append(f"  Stack: {[hex(a) for a in summary['stack']]}")
    for name, value in summary['timers'].items():
        reg_lines.append(f"  {name}: {value}")

    registers_text = "\n".join(reg_lines)

    return summary_text, trace_text, registers_text, cpu.io.display.render()


def load_example(example_name: str) -> tuple:
    """Load an example program."""
    return EXAMPLE_PROGRAMS.get(example_name, ""), example_name in FONT_PROGRAMS


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="chip8-core Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # chip8-core: CHIP-8 Interpreter

        Programs are 16-bit hex words loaded at address 0. `0000` halts.
        `ADDR:` starts a new segment, `;` starts a comment.

        **Cycle**: `fetch -> decode -> key -> registry -> next PC`
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Program")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Add 7+2",
                    label="Load Example"
                )

                program_input = gr.Textbox(
                    value=EXAMPLE_PROGRAMS["Add 7+2"],
                    label="Hex Words",
                    lines=15,
                    placeholder="Enter hex words here..."
                )

                gr.Markdown("### Settings")

                with gr.Row():
                    font_checkbox = gr.Checkbox(value=False, label="Load font at 0x050")
                    legacy_checkbox = gr.Checkbox(value=False, label="Legacy Fx55/Fx65 (I increments)")

                with gr.Row():
                    seed_input = gr.Number(value=0, precision=0, label="RND Seed")
                    max_cycles = gr.Slider(
                        minimum=100,
                        maximum=100000,
                        value=10000,
                        step=100,
                        label="Max Cycles"
                    )

                run_button = gr.Button("Run Program", variant="primary")

            with gr.Column(scale=3):
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=10,
                        interactive=False
                    )
                    registers_output = gr.Textbox(
                        label="Final Registers",
                        lines=10,
                        interactive=False
                    )

                display_output = gr.Textbox(
                    label="Display (64x32)",
                    lines=32,
                    interactive=False
                )

                trace_output = gr.Textbox(
                    label="Execution Trace",
                    lines=20,
                    interactive=False
                )

        with gr.Accordion("Instruction Reference", open=False):
            gr.Markdown("""
            | Opcode | Description |
            |--------|-------------|
            | `0000` | Halt |
            | `00E0` / `00EE` | Clear display / return |
            | `1nnn` / `2nnn` / `Bnnn` | Jump / call / jump to nnn + V0 |
            | `3xkk` / `4xkk` | Skip if Vx == kk / != kk |
            | `5xy0` / `9xy0` | Skip if Vx == Vy / != Vy |
            | `6xkk` / `7xkk` | Vx = kk / Vx += kk |
            | `8xy0`-`8xy7`, `8xyE` | LD, OR, AND, XOR, ADD, SUB, SHR, SUBN, SHL |
            | `Annn` / `Fx1E` | I = nnn / I += Vx |
            | `Cxkk` | Vx = random & kk |
            | `Dxyn` | Draw n-row sprite at (Vx, Vy), VF = collision |
            | `Ex9E` / `ExA1` | Skip if key Vx pressed / not pressed |
            | `Fx07` / `Fx15` / `Fx18` | Read DT / set DT / set ST |
            | `Fx0A` | Wait for key |
            | `Fx29` / `Fx33` | Glyph address / BCD |
            | `Fx55` / `Fx65` | Store / load V0..Vx at I |
            """)

        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[program_input, font_checkbox]
        )

        run_button.click(
            fn=run_program,
            inputs=[program_input, font_checkbox, legacy_checkbox, seed_input, max_cycles],
            outputs=[summary_output, trace_output, registers_output, display_output]
        )

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
