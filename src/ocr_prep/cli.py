"""Main CLI entry point."""

import logging
import sys
from pathlib import Path

import click
from click.core import ParameterSource
import pytesseract
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from ocr_prep.config import BinarizationPolicy, BorderMode, PipelineConfig, PRESETS
from ocr_prep.loader import ImageDecodeError, load_image, save_image
from ocr_prep.pipeline import run_pipeline
from ocr_prep.postprocessing import normalize_whitespace
from ocr_prep.reader import extract_text
from ocr_prep.recognizers.base import EngineMode, PageSegMode
from ocr_prep.recognizers.tesseract import TesseractRecognizer

console = Console(stderr=True)
load_dotenv()

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tif", ".tiff", ".webp"}


@click.command()
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--preset",
    type=click.Choice(sorted(PRESETS), case_sensitive=False),
    default=None,
    help="Named pipeline configuration. [default: otsu]",
)
@click.option(
    "--policy",
    type=click.Choice([p.value for p in BinarizationPolicy], case_sensitive=False),
    default=None,
    help="Binarization threshold policy (overrides the preset).",
)
@click.option(
    "--denoise/--no-denoise",
    default=None,
    help="Box-blur the image before the contrast stretch.",
)
@click.option(
    "--sharpen/--no-sharpen",
    default=None,
    help="Sharpen the binarized image.",
)
@click.option(
    "--border",
    type=click.Choice([b.value for b in BorderMode], case_sensitive=False),
    default=None,
    help="Edge handling for the denoise / sharpen convolutions.",
)
@click.option(
    "--min-dimension",
    type=int,
    default=None,
    help="Images whose shorter side is below this are upscaled. [default: 300]",
)
@click.option(
    "--upscale-factor",
    type=float,
    default=None,
    help="Scale factor applied to small images. [default: 2.0]",
)
@click.option(
    "--dpi",
    type=int,
    default=None,
    help="Resolution hint passed to Tesseract.",
)
@click.option("--lang", default="eng", show_default=True, help="Tesseract language.")
@click.option(
    "--oem",
    type=click.IntRange(0, 3),
    default=int(EngineMode.LSTM_ONLY),
    show_default=True,
    help="Tesseract OCR engine mode.",
)
@click.option(
    "--psm",
    type=click.IntRange(0, 13),
    default=int(PageSegMode.AUTO),
    show_default=True,
    help="Tesseract page segmentation mode.",
)
@click.option(
    "--save-preprocessed",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write the preprocessed image to this PNG file.",
)
@click.option(
    "--ocr/--no-ocr",
    default=True,
    show_default=True,
    help="Run text recognition on the preprocessed image.",
)
@click.option(
    "--output", "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file path. Defaults to stdout.",
)
@click.option(
    "--raw",
    is_flag=True,
    default=False,
    help="Print recognized text as-is instead of collapsing whitespace.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log each pipeline stage.")
@click.version_option(package_name="ocr-prep")
def main(
    input_path, preset, policy, denoise, sharpen, border, min_dimension,
    upscale_factor, dpi, lang, oem, psm, save_preprocessed, ocr, output, raw, verbose,
):
    """Preprocess a photo of a label and OCR it with Tesseract.

    INPUT_PATH can be a .png, .jpg, .jpeg, .bmp, .gif, .tif, .tiff or .webp
    file. Results are written to stdout unless --output is specified.
    """
    _configure_logging(verbose)

    if input_path.suffix.lower() not in IMAGE_EXTENSIONS:
        console.print(f"[red]Unsupported file type:[/red] {input_path.suffix}")
        sys.exit(1)

    if not ocr and save_preprocessed is None:
        console.print("[red]Error:[/red] --no-ocr requires --save-preprocessed.")
        sys.exit(1)

    try:
        config = PipelineConfig.from_env(
            preset=preset,
            binarization_policy=BinarizationPolicy(policy.lower()) if policy else None,
            include_denoise=_explicit("denoise", denoise),
            include_sharpen=_explicit("sharpen", sharpen),
            border_mode=BorderMode(border.lower()) if border else None,
            min_dimension_for_upscale=min_dimension,
            upscale_factor=upscale_factor,
            target_dpi=dpi,
        )
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    try:
        image = load_image(input_path)
    except ImageDecodeError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if not ocr:
        result = run_pipeline(image, config)
        save_image(result.buffer, save_preprocessed)
        console.print(f"[green]Preprocessed image written to {save_preprocessed}[/green]")
        return

    recognizer = _build_recognizer()

    with console.status("[cyan]Running OCR via Tesseract..."):
        try:
            read = extract_text(
                image,
                recognizer,
                config=config,
                language=lang,
                engine_mode=EngineMode(oem),
                page_seg_mode=PageSegMode(psm),
            )
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError) as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)

    if save_preprocessed is not None and read.pipeline is not None:
        save_image(read.pipeline.buffer, save_preprocessed)
        console.print(f"[dim]Preprocessed image written to {save_preprocessed}[/dim]")

    text = read.text if raw else normalize_whitespace(read.text)

    if output:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]Written to {output}[/green]")
    else:
        click.echo(text)


def _build_recognizer():
    return TesseractRecognizer()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _explicit(name: str, value):
    """Return *value* only if the flag was given, so presets are not overridden."""
    source = click.get_current_context().get_parameter_source(name)
    return None if source in (None, ParameterSource.DEFAULT) else value
