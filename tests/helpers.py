import io

from PIL import Image

LOOKUP_SERVICE = "http://lookup.test/structure/$name/smiles"
RENDER_SERVICE = "http://sourire.test/molecule/$smiles"


def make_png(size=(300, 200), color=(0, 0, 0, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()
