#!/usr/bin/env python3
"""
Incarnate Avatar Pipeline Script

Runs one character brief end to end:
1. Optimize the brief into a turnaround-sheet prompt
2. Generate, critique and refine the portrait (up to 3 cycles)
3. Ask for approval (or feedback) when the quality bar is not met
4. Render the 360-degree turnaround video
5. Optionally convert the portrait into a textured 3D model

Output artifacts in outputs/<brief_id>/:
- portrait.<ext>
- prompt.txt
- turnaround.mp4        # When video generation succeeds
- model.glb             # With --model
- model_preview.<ext>   # With --model, when the provider renders one
- session_log.txt

Usage:
    python scripts/run_avatar.py --name Nova --description "street hacker"
    python scripts/run_avatar.py --name Nova --description "street hacker" \\
        --style cyberpunk --scenario "neon alley" --mode IMMERSIVE
    python scripts/run_avatar.py --name Nova --description "..." --reference face.jpg
    python scripts/run_avatar.py --name Nova --description "..." --model

Prerequisites:
    GOOGLE_API_KEY set (and TRIPO_API_KEY for --model)
"""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path

import httpx

sys.path.insert(0, str(Path(__file__).parent.parent))

from incarnate.common import get_settings, setup_logging
from incarnate.common.models import (
    BackgroundMode,
    GenerationBrief,
    GenerationEvent,
    GenerationStep,
    ReferenceImage,
)
from incarnate.orchestration import AvatarWorkflow, WorkflowConfig
from incarnate.providers import ProviderError, build_providers

OUTPUT_ROOT = Path(__file__).parent.parent / "outputs"


def print_event(event: GenerationEvent) -> None:
    stamp = event.timestamp.strftime("%H:%M:%S")
    print(f"[{stamp}] {event.severity.value.upper():7} {event.message}")


def load_reference(path: str | None) -> ReferenceImage | None:
    if not path:
        return None
    file = Path(path)
    mime_type = mimetypes.guess_type(file.name)[0] or "image/jpeg"
    return ReferenceImage(data=file.read_bytes(), mime_type=mime_type)


def extension_for(mime_type: str) -> str:
    return (mimetypes.guess_extension(mime_type) or ".png").lstrip(".")


def save_artifacts(workflow: AvatarWorkflow, output_dir: Path) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)

    image = workflow.image
    if image is not None:
        (output_dir / f"portrait.{extension_for(image.mime_type)}").write_bytes(image.data)
    if workflow.prompt:
        (output_dir / "prompt.txt").write_text(workflow.prompt)
    if workflow.video is not None:
        (output_dir / "turnaround.mp4").write_bytes(workflow.video.data)
    if workflow.model is not None:
        (output_dir / "model.glb").write_bytes(workflow.model.model_data)
        if workflow.model.rendered_image_data:
            (output_dir / "model_preview.webp").write_bytes(workflow.model.rendered_image_data)

    lines = [
        f"{event.timestamp.isoformat()} [{event.severity.value}] {event.message}"
        for event in workflow.session.events
    ]
    (output_dir / "session_log.txt").write_text("\n".join(lines) + "\n")


async def prompt_for_decision(workflow: AvatarWorkflow, with_video: bool = True) -> None:
    """Interactive approval / feedback round while the loop needs a human."""
    while workflow.status is GenerationStep.AWAITING_APPROVAL:
        score = workflow.result.best_score if workflow.result else 0
        print(f"\nBest score {score}/100 is below the quality threshold.")
        answer = input("Type feedback to refine, 'a' to approve, or 'q' to quit: ").strip()
        if answer.lower() == "q":
            return
        if answer.lower() == "a":
            await workflow.approve(with_video=with_video)
        elif answer:
            await workflow.submit_feedback(answer)


async def run_avatar(args: argparse.Namespace) -> bool:
    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.json_logs)

    brief = GenerationBrief(
        name=args.name,
        description=args.description,
        style=args.style,
        scenario=args.scenario,
        background_mode=BackgroundMode(args.mode),
        reference_image=load_reference(args.reference),
    )

    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as http:
        providers = build_providers(settings, http=http)
        config = WorkflowConfig.from_settings(settings)
        config.auto_video = not args.no_video

        workflow = AvatarWorkflow(providers, config=config)
        workflow.session.subscribe(on_event=print_event)

        try:
            await workflow.run(brief)
            if args.interactive:
                await prompt_for_decision(workflow, with_video=not args.no_video)
            if args.model and workflow.status is GenerationStep.COMPLETE:
                await workflow.generate_model()
        except ProviderError as e:
            print(f"\nGeneration failed: {e}", file=sys.stderr)
            return False
        finally:
            output_dir = Path(args.output) if args.output else OUTPUT_ROOT / brief.id
            save_artifacts(workflow, output_dir)
            print(f"\nArtifacts written to {output_dir}")

    return workflow.status is GenerationStep.COMPLETE


def main():
    parser = argparse.ArgumentParser(
        description="Generate a character portrait, turnaround video and 3D model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--name", required=True, help="Character name")
    parser.add_argument("--description", required=True, help="Free-text character description")
    parser.add_argument("--style", default="", help="Art style")
    parser.add_argument("--scenario", default="", help="Scenario or environment")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in BackgroundMode],
        default=BackgroundMode.STUDIO.value,
        help="Background staging",
    )
    parser.add_argument("--reference", help="Reference face image for likeness")
    parser.add_argument("--output", help="Output directory (default outputs/<brief_id>)")
    parser.add_argument(
        "--no-video",
        action="store_true",
        help="Skip video generation, including after approval",
    )
    parser.add_argument("--model", action="store_true", help="Also convert to a 3D model")
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Ask for approval or feedback when the quality bar is not met",
    )

    args = parser.parse_args()
    success = asyncio.run(run_avatar(args))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
