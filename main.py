import json
import logging
import os
import sys

from core.config import SearchConfig
from core.report import log_report
from core.utils import AllocationError, load_image
from tools.base_address_search import run_analysis

logger = logging.getLogger("basefind")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2


def main(argv=None):
    argv = sys.argv if argv is None else argv

    if len(argv) != 2:
        print(f"Usage: {argv[0]} FIRMWARE_FILE")
        return EXIT_USAGE

    firmware_path = argv[1]

    # Debug flag: set DEBUG=1 to see per-stage details
    debug = os.getenv("DEBUG", "0") == "1"
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
    )

    try:
        config = SearchConfig.from_env()
        image = load_image(firmware_path)
    except (OSError, AllocationError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    report = run_analysis(image, config)

    if os.getenv("BASEFIND_JSON", "0") == "1":
        print(json.dumps(report.to_dict(), indent=2))
    else:
        log_report(report, logger)

    # Explain flag: set EXPLAIN=1 to have the agent interpret the ranking
    if os.getenv("EXPLAIN", "0") == "1":
        from agents.orchestrator import create_orchestrator

        try:
            agent = create_orchestrator()
        except RuntimeError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return EXIT_ERROR
        if debug:
            agent.show_tool_calls = True
        prompt = (
            f"Recover the load base address of the raw firmware image at: {firmware_path}\n"
            f"Use your tools (find_base_address, scan_strings, scan_pointers) and "
            f"report findings based ONLY on the real tool outputs."
        )
        print(f"--- Explaining base address candidates for {firmware_path} ---\n")
        agent.print_response(prompt, stream=True)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
