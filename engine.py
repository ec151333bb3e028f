# engine.py
import io
import logging
import re
from urllib.parse import quote_plus

import requests
from PIL import Image, UnidentifiedImageError

log = logging.getLogger("sourire_web.engine")

# molecule may take up at most this share of the canvas on either axis
PROPORTION = 0.6

_HEX_COLOR = re.compile(r"[0-9a-fA-F]{6}")


class InvalidParameter(ValueError):
    pass


class UpstreamError(RuntimeError):
    pass


# ---------- parameter parsing ----------
def parse_dimension(value: str, label: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise InvalidParameter(f"{label} must be a positive integer, got {value!r}")
    n = int(value)
    if n <= 0:
        raise InvalidParameter(f"{label} must be a positive integer, got {value!r}")
    return n


def is_color(value: str) -> bool:
    return bool(_HEX_COLOR.fullmatch(value))


def parse_color(value: str) -> tuple[int, int, int]:
    """Parse 'RRGGBB' (no leading '#') into three 0-255 channel values."""
    if not is_color(value):
        raise InvalidParameter(f"color must be 6 hex digits, got {value!r}")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


# ---------- colorize ----------
def colorize_levels(rgb: tuple[int, int, int]) -> tuple[int, int, int]:
    """Map 0-255 channels onto the 0-100 percentage scale colorize works in."""
    return tuple(round(c * 100 / 255) for c in rgb)


def colorize(image: Image.Image, rgb: tuple[int, int, int]) -> Image.Image:
    """
    Shift every pixel toward `rgb`.
    Each channel's unrounded percentage (c * 100 / 255) becomes an additive
    offset of pct * 2.55, clamped to 0..255. Alpha is left alone.
    """
    offsets = [round(c * 100 / 255 * 2.55) for c in rgb]
    r, g, b, a = image.convert("RGBA").split()
    bands = [
        band.point(lambda x, off=off: max(0, min(255, x + off)))
        for band, off in zip((r, g, b), offsets)
    ]
    return Image.merge("RGBA", (*bands, a))


# ---------- fetch ----------
def fetch_molecule(render_service: str, smiles: str) -> Image.Image:
    url = render_service.replace("$smiles", quote_plus(smiles, safe=""))
    try:
        r = requests.get(url)
        r.raise_for_status()
    except requests.RequestException as e:
        log.info("Renderer request failed for %r: %s", smiles, e)
        raise UpstreamError("Molecule renderer is unavailable.") from e

    try:
        img = Image.open(io.BytesIO(r.content))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        log.info("Renderer returned an unreadable image for %r: %s", smiles, e)
        raise UpstreamError("Molecule renderer returned an invalid image.") from e
    return img


def render_molecule(render_service: str, color: tuple[int, int, int], smiles: str) -> Image.Image:
    return colorize(fetch_molecule(render_service, smiles), color)


# ---------- scale & center ----------
def scale_to_fit(
    molecule: Image.Image,
    canvas_width: int,
    canvas_height: int,
    proportion: float = PROPORTION,
) -> Image.Image:
    px = molecule.width / canvas_width
    py = molecule.height / canvas_height
    while px > proportion or py > proportion:
        if px > proportion:
            factor = (canvas_width * proportion) / molecule.width
        else:
            factor = (canvas_height * proportion) / molecule.height

        size = (
            max(1, int(molecule.width * factor)),
            max(1, int(molecule.height * factor)),
        )
        if size == molecule.size:
            log.warning(
                "Cannot shrink %sx%s molecule further for %sx%s canvas",
                molecule.width, molecule.height, canvas_width, canvas_height,
            )
            break
        log.debug("Scaling molecule %s -> %s (factor %.4f)", molecule.size, size, factor)
        molecule = molecule.resize(size, Image.LANCZOS)
        px = molecule.width / canvas_width
        py = molecule.height / canvas_height
    return molecule


def render_scaled_molecule(
    render_service: str,
    canvas_width: int,
    canvas_height: int,
    color: tuple[int, int, int],
    smiles: str,
) -> Image.Image:
    molecule = render_molecule(render_service, color, smiles)
    return scale_to_fit(molecule, canvas_width, canvas_height)


def center_on_canvas(
    molecule: Image.Image,
    width: int,
    height: int,
    bgcolor: tuple[int, int, int],
) -> Image.Image:
    canvas = Image.new("RGB", (width, height), bgcolor)
    offset = ((width - molecule.width) // 2, (height - molecule.height) // 2)
    mask = molecule if molecule.mode == "RGBA" else None
    canvas.paste(molecule, offset, mask)
    return canvas


def to_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


if __name__ == "__main__":
    from config import load_settings

    settings = load_settings()
    mol = render_scaled_molecule(settings.molecule_render_service, 300, 300, (0, 0, 0), "CCO")
    png = to_png(center_on_canvas(mol, 300, 300, (255, 255, 255)))
    with open("ethanol.png", "wb") as f:
        f.write(png)
    print("Wrote ethanol.png")
