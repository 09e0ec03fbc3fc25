"""mansplain entry point.

Looks up a man page, hands it to the configured LLM backend and prints the
(slightly condescending) explanation, streamed or in one piece.

Precedence for every setting: CLI flag > MANSPLAIN_* environment (.env included)
> provider preset default.
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, NamedTuple, Optional, TextIO

from mansplain import __version__
from mansplain.core import config
from mansplain.providers.base import ProviderError
from mansplain.providers.factory import ConfigError, get_adapter, get_preset
from mansplain.providers.transport import HttpTransport
from mansplain.schemas.request import Provider, RequestSpec
from mansplain.services.explain import Explainer
from mansplain.services.manpage import ExternalToolError, fetch_man_page
from mansplain.services.prompt import build_user_content, resolve_system_prompt

logger = logging.getLogger(__name__)

SECURE_PREFIXES = ("https://", "http://localhost", "http://127.0.0.1")


class Backend(NamedTuple):
    provider: Provider
    endpoint: str
    model: str
    api_key: Optional[str]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mansplain",
        description="A slightly condescending man page explainer",
    )
    parser.add_argument("command", help="The command to mansplain")
    parser.add_argument("section", nargs="?", default=None, help="Optional man section (e.g. 1, 2, 3)")
    parser.add_argument(
        "--provider",
        default=config.PROVIDER,
        help="LLM provider to use: ollama, perplexity, openai (env: MANSPLAIN_PROVIDER)",
    )
    parser.add_argument("-m", "--model", default=config.MODEL, help="LLM model to use (env: MANSPLAIN_MODEL)")
    parser.add_argument(
        "-a", "--api-url",
        default=config.API_URL,
        help="API endpoint URL for Ollama or a custom OpenAI-compatible server (env: MANSPLAIN_API_URL)",
    )
    parser.add_argument("-k", "--api-key", default=config.API_KEY, help="API key (env: MANSPLAIN_API_KEY)")
    parser.add_argument(
        "-p", "--prompt",
        default=config.PROMPT,
        help="Custom system prompt, replaces the default one (env: MANSPLAIN_PROMPT)",
    )
    parser.add_argument("-s", "--stream", action="store_true", default=config.STREAM, help="Stream the output")
    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        default=config.DEBUG,
        help="Enable debug logging (prints URLs and payloads)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="[%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    if not debug:
        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)


def resolve_backend(
    provider_name: str,
    *,
    model: Optional[str] = None,
    api_url: Optional[str] = None,
    api_key: Optional[str] = None,
) -> Backend:
    preset = get_preset(provider_name)
    if preset.requires_key and not api_key:
        raise ConfigError(
            f"API key required for {provider_name.strip().lower()}. "
            "Set MANSPLAIN_API_KEY environment variable or use --api-key flag"
        )
    return Backend(
        provider=preset.family,
        endpoint=api_url or preset.api_url,
        model=model or preset.model,
        api_key=api_key or None,
    )


def generation_options(provider: Provider) -> Dict[str, Any]:
    if provider is not Provider.LOCAL:
        return {}
    options: Dict[str, Any] = {}
    if config.TEMPERATURE is not None:
        options["temperature"] = config.TEMPERATURE
    if config.NUM_CTX is not None:
        options["num_ctx"] = config.NUM_CTX
    return options


def build_request_spec(backend: Backend, *, man_page: str, prompt: Optional[str] = None, stream: bool = False) -> RequestSpec:
    return RequestSpec(
        provider=backend.provider,
        model=backend.model,
        endpoint=backend.endpoint,
        api_key=backend.api_key,
        system_prompt=resolve_system_prompt(prompt),
        user_content=build_user_content(man_page),
        stream=stream,
        options=generation_options(backend.provider),
    )


def warn_if_insecure(endpoint: str) -> None:
    if not endpoint.startswith(SECURE_PREFIXES):
        logger.warning("using non-HTTPS API URL %s; this may expose your API key.", endpoint)


async def run(args: argparse.Namespace, sink: Optional[TextIO] = None) -> str:
    backend = resolve_backend(args.provider, model=args.model, api_url=args.api_url, api_key=args.api_key)
    warn_if_insecure(backend.endpoint)

    # the man lookup fails before any network call is made
    man_page = await fetch_man_page(args.command, args.section)

    spec = build_request_spec(backend, man_page=man_page, prompt=args.prompt, stream=args.stream)
    explainer = Explainer(get_adapter(spec.provider), HttpTransport(), sink)
    return await explainer.run(spec)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    try:
        asyncio.run(run(args))
    except (ConfigError, ExternalToolError, ProviderError) as e:
        logger.debug("invocation failed", exc_info=True)
        print(f"mansplain: {e.stage}: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print(file=sys.stderr)
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
