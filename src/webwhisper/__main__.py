import json
import sys
from pathlib import Path

import structlog

from webwhisper.app import get_components
from webwhisper.config import load_config
from webwhisper.errors import WebWhisperError
from webwhisper.ingestion import CrawledPage
from webwhisper.util.logging import configure_logging

_logger = structlog.get_logger()

_USAGE = """Usage: python -m webwhisper <command>

Commands:
  init                                   create the index collection/schema
  ingest <url> <file> [--title T] [--description D]
  search <query...>                      knowledge-base search
  chat <message...>                      full chat response
  sources                                list stored sources
  delete <url>                           remove a source
  health                                 report whether the index has data"""


def _usage() -> None:
    print(_USAGE)
    sys.exit(1)


def _option(args: list[str], name: str) -> str | None:
    if name not in args:
        return None
    idx = args.index(name)
    if idx + 1 >= len(args):
        print(f"{name} requires a value")
        sys.exit(1)
    value = args[idx + 1]
    del args[idx : idx + 2]
    return value


def _print(payload: object) -> None:
    print(json.dumps(payload, indent=2, default=str))


def main() -> None:
    args = sys.argv[1:]
    if not args:
        _usage()

    command, rest = args[0], args[1:]
    config = load_config()
    configure_logging(json_output=config.logging.json_output, log_level=config.logging.level)

    try:
        components = get_components()
        match command:
            case "init":
                _logger.info("index_ready", backend=components.index.name)
            case "ingest":
                title = _option(rest, "--title") or ""
                description = _option(rest, "--description") or ""
                if len(rest) != 2:
                    _usage()
                url, file_path = rest
                content = Path(file_path).read_text(encoding="utf-8", errors="replace")
                result = components.ingestor.ingest(
                    CrawledPage(url=url, content=content, title=title, description=description)
                )
                _print({"url": result.url, "chunksStored": result.chunks_stored})
            case "search":
                if not rest:
                    _usage()
                documents = components.orchestrator.search_documents(" ".join(rest))
                _print({"documents": [d.as_dict() for d in documents]})
            case "chat":
                if not rest:
                    _usage()
                _print(components.orchestrator.respond(" ".join(rest)).as_dict())
            case "sources":
                _print([vars(s) for s in components.index.list_sources()])
            case "delete":
                if len(rest) != 1:
                    _usage()
                deleted = components.ingestor.delete(rest[0])
                _print({"url": rest[0], "deletedChunks": deleted})
            case "health":
                _print(components.index.health_check().as_dict())
            case _:
                _usage()
    except WebWhisperError as exc:
        _logger.error("command_failed", command=command, error=str(exc))
        sys.exit(2)


if __name__ == "__main__":
    main()
