import argparse
import json
import logging
import mimetypes
import sys

import anyio

from .backgrounds import BG_OPTIONS, DEFAULT_BACKGROUND, get_background
from .compositor import DOWNLOAD_FILENAME, render_avatar
from .config import load_settings
from .encoding import encode_image, prepare_inline_image
from .errors import AvatarStudioError
from .gemini import generate_image, list_models
from .session import AvatarSession, Upload

logger = logging.getLogger("avatar_studio.cli")


def cmd_serve(args) -> int:
    import uvicorn

    uvicorn.run("avatar_studio.server:app", host=args.host, port=args.port, reload=args.reload,
                log_level=load_settings().log_level)
    return 0


def cmd_models(args) -> int:
    _, data = list_models(load_settings())
    print(json.dumps(data, indent=2))
    return 0


def cmd_render(args) -> int:
    with open(args.photo, "rb") as f:
        data = f.read()
    mime_type = mimetypes.guess_type(args.photo)[0] or "image/png"
    background = get_background(args.background)

    session = AvatarSession()
    seq = session.begin_upload(Upload(data, mime_type))
    if args.skip_generate:
        session.fail(seq, "generation skipped")
    else:
        try:
            image_b64, mime = prepare_inline_image(encode_image(data), mime_type)
            session.resolve(seq, generate_image(load_settings(), image_b64, mime, args.prompt))
        except AvatarStudioError as e:
            session.fail(seq, e.message)
            print(f"Generation failed ({e.status_code}): {e.message}", file=sys.stderr)
            print("Compositing the original photo instead.", file=sys.stderr)

    source = session.download_source()
    png = anyio.run(render_avatar, source.data, background.stops)
    with open(args.output, "wb") as f:
        f.write(png)
    print(f"Saved {args.output} ({session.state.value})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="avatar-studio", description="ETHMumbai avatar generator")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the HTTP API and page")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    models = sub.add_parser("models", help="list models available to the configured key")
    models.set_defaults(func=cmd_models)

    render = sub.add_parser("render", help="style a photo and write the final avatar PNG")
    render.add_argument("photo")
    render.add_argument("--background", default=DEFAULT_BACKGROUND, choices=[o.id for o in BG_OPTIONS])
    render.add_argument("--prompt", default=None, help="override the default styling instruction")
    render.add_argument("--skip-generate", action="store_true", help="composite the photo as-is")
    render.add_argument("--output", "-o", default=DOWNLOAD_FILENAME)
    render.set_defaults(func=cmd_render)
    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except AvatarStudioError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
