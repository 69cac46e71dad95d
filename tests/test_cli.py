from PIL import Image

from avatar_studio import cli
from helpers import FakeResponse, image_b64, image_bytes, inline_response


def write_photo(tmp_path):
    path = tmp_path / "me.png"
    path.write_bytes(image_bytes((120, 80), fmt="PNG"))
    return path


def test_render_skip_generate(tmp_path, capsys):
    out = tmp_path / "avatar.png"
    rc = cli.main(["render", str(write_photo(tmp_path)), "--skip-generate", "--background", "eth-blue", "-o", str(out)])
    assert rc == 0
    assert Image.open(out).size == (1080, 1080)
    assert "(failed)" in capsys.readouterr().out


def test_render_with_generation(tmp_path, api_key, upstream_post, capsys):
    upstream_post.response = FakeResponse(200, inline_response("image/jpeg", image_b64((64, 64))))
    out = tmp_path / "avatar.png"
    rc = cli.main(["render", str(write_photo(tmp_path)), "-o", str(out)])
    assert rc == 0
    assert len(upstream_post.calls) == 1
    assert "(ready)" in capsys.readouterr().out


def test_render_falls_back_when_generation_fails(tmp_path, no_api_key, capsys):
    out = tmp_path / "avatar.png"
    rc = cli.main(["render", str(write_photo(tmp_path)), "-o", str(out)])
    assert rc == 0
    assert out.exists()
    assert "Generation failed (500)" in capsys.readouterr().err


def test_models_without_key(no_api_key, capsys):
    assert cli.main(["models"]) == 1
    assert "GEMINI_API_KEY" in capsys.readouterr().err


def test_missing_photo(tmp_path):
    assert cli.main(["render", str(tmp_path / "nope.jpg"), "--skip-generate"]) == 1
