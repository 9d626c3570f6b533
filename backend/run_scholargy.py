import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scholargy.errors import ScholargyError  # noqa: E402

from backend.app.dependencies import (  # noqa: E402
    close_clients,
    get_answer_service,
    get_config,
)


async def run_query(question: str, history: list) -> int:
    logger = logging.getLogger("scholargy.run")
    service = get_answer_service()
    logger.info("capabilities: %s", json.dumps(service.capabilities()))

    start = time.perf_counter()
    try:
        query = service.validate(question, history)
        relay = await service.prepare(query)
    except ScholargyError as exc:
        logger.error("query failed before streaming: %s", exc)
        return 1

    async for fragment in relay.fragments():
        sys.stdout.write(fragment)
        sys.stdout.flush()
    sys.stdout.write("\n")

    logger.info(
        "relay %s after %.2fs (%s fragments)",
        relay.state.value,
        time.perf_counter() - start,
        relay.fragments_sent,
    )
    return 0 if relay.error is None else 2


async def _main(args: argparse.Namespace) -> int:
    history = json.loads(args.history) if args.history else []
    try:
        return await run_query(args.question, history)
    finally:
        await close_clients()


def main() -> None:
    parser = argparse.ArgumentParser(description="Ask Scholargy one question.")
    parser.add_argument("question")
    parser.add_argument(
        "--history",
        help='prior turns as JSON, e.g. \'[{"role": "user", "content": "..."}]\'',
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=get_config().log_level,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
