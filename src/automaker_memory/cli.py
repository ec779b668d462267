"""CLI commands for inspecting and maintaining project memory.

Provides subcommands to initialize the memory folder, preview the prompt
block an agent would receive, record learnings and feed back agent output.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from .config import MemoryConfig, load_config
from .context import ContextLoader, MemoryFileInfo, TaskContext
from .logging import JSONLLogger, configure_logger
from .memory import (
    LearningEntry,
    LearningType,
    append_learning,
    get_memory_dir,
    initialize_memory_folder,
    read_memory_files,
    record_memory_usage,
)
from .memory.store import read_memory_file


def _event_logger(config: MemoryConfig) -> JSONLLogger | None:
    """JSONL logger if the config enables one."""
    if config.log_dir is None:
        return None
    return configure_logger(config.log_dir)


def _project_dir(args: argparse.Namespace) -> Path | None:
    """Resolve the project argument, printing an error if it is not a directory."""
    project = Path(args.project).expanduser()
    if not project.is_dir():
        print(f"Error: Project directory '{args.project}' not found.")
        return None
    return project


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize the memory folder of a project."""
    project = _project_dir(args)
    if project is None:
        return 1

    created = asyncio.run(initialize_memory_folder(project))
    memory_dir = get_memory_dir(project)
    if created:
        print(f"Initialized memory folder: {memory_dir}")
    else:
        print(f"Memory folder already exists: {memory_dir}")
    return 0


def cmd_load(args: argparse.Namespace) -> int:
    """Print the context/memory prompt block for a task."""
    project = _project_dir(args)
    if project is None:
        return 1

    config = load_config()
    loader = ContextLoader(config=config, event_logger=_event_logger(config))
    task = TaskContext(title=args.title, description=args.description) if args.title else None

    result = asyncio.run(loader.load(
        project,
        task_context=task,
        max_memory_files=args.max_files,
        include_memory=False if args.no_memory else None,
        initialize_memory=False if args.no_init else None,
    ))

    if not result.formatted_prompt:
        print("No context or memory files found.")
        return 0

    print(result.formatted_prompt)
    if result.memory_files:
        selected = ", ".join(f"{f.name} ({f.score:.2f})" for f in result.memory_files)
        print(f"\nSelected memory: {selected}", file=sys.stderr)
    return 0


def cmd_summary(args: argparse.Namespace) -> int:
    """List context files and their descriptions."""
    project = _project_dir(args)
    if project is None:
        return 1

    files = asyncio.run(ContextLoader().summary(project))
    if not files:
        print("No context files found.")
        return 0

    print(f"\n{'Name':<30} Description")
    print("-" * 80)
    for f in files:
        print(f"{f.name:<30} {f.description or ''}")

    print(f"\nTotal: {len(files)} context file(s)")
    return 0


def cmd_append(args: argparse.Namespace) -> int:
    """Record a learning in a category file."""
    project = _project_dir(args)
    if project is None:
        return 1

    learning = LearningEntry(
        category=args.category,
        type=LearningType(args.type),
        content=args.content,
        context=args.context,
        why=args.why,
        rejected=args.rejected,
        tradeoffs=args.tradeoffs,
        breaking=args.breaking,
    )

    config = load_config()
    path = asyncio.run(
        append_learning(project, learning, event_logger=_event_logger(config))
    )
    print(f"Recorded {learning.type.value} in {path}")
    return 0


async def _record_usage(
    project: Path,
    names: list[str],
    output: str,
    success: bool,
    event_logger: JSONLLogger | None,
) -> list[str]:
    memory_dir = get_memory_dir(project)
    loaded: list[MemoryFileInfo] = []
    for name in names:
        try:
            memory = await read_memory_file(project, name)
        except (OSError, UnicodeDecodeError):
            print(f"Warning: memory file '{name}' not readable, skipping.")
            continue
        loaded.append(MemoryFileInfo(
            name=name,
            path=str(memory_dir / name),
            content=memory.body,
            category=memory.category,
        ))
    return await record_memory_usage(
        project, loaded, output, success, event_logger=event_logger
    )


def cmd_record_usage(args: argparse.Namespace) -> int:
    """Feed agent output back into the usage counters of loaded files."""
    project = _project_dir(args)
    if project is None:
        return 1

    try:
        output = Path(args.output_file).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: Cannot read output file '{args.output_file}': {e}")
        return 1

    config = load_config()
    referenced = asyncio.run(_record_usage(
        project, args.files, output, args.success, _event_logger(config)
    ))

    if referenced:
        print(f"Referenced: {', '.join(referenced)}")
    else:
        print("No memory files were referenced.")
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Show importance and usage counters of every memory file."""
    project = _project_dir(args)
    if project is None:
        return 1

    files = asyncio.run(read_memory_files(project))
    if not files:
        print("No memory files found.")
        return 0

    print(f"\n{'Name':<30} {'Importance':>10} {'Loaded':>8} {'Referenced':>11} {'Successful':>11}")
    print("-" * 74)
    for f in files:
        stats = f.metadata.usage_stats
        print(
            f"{f.name:<30} {f.metadata.importance:>10.2f} {stats.loaded:>8} "
            f"{stats.referenced:>11} {stats.successful_features:>11}"
        )

    print(f"\nTotal: {len(files)} memory file(s)")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the memory CLI."""
    parser = argparse.ArgumentParser(
        prog="automaker-memory",
        description="Inspect and maintain project context and memory",
    )

    subparsers = parser.add_subparsers(dest="command", help="Sub-command help")

    # init command
    init_parser = subparsers.add_parser("init", help="Initialize the memory folder")
    init_parser.add_argument("project", help="Project root directory")

    # load command
    load_parser = subparsers.add_parser("load", help="Print the prompt block for a task")
    load_parser.add_argument("project", help="Project root directory")
    load_parser.add_argument("-t", "--title", help="Task title")
    load_parser.add_argument("-d", "--description", help="Task description")
    load_parser.add_argument(
        "-n", "--max-files",
        type=int,
        help="Maximum memory files to select",
    )
    load_parser.add_argument(
        "--no-memory",
        action="store_true",
        help="Only load context files",
    )
    load_parser.add_argument(
        "--no-init",
        action="store_true",
        help="Do not create a missing memory folder",
    )

    # summary command
    summary_parser = subparsers.add_parser("summary", help="List context files")
    summary_parser.add_argument("project", help="Project root directory")

    # append command
    append_parser = subparsers.add_parser("append", help="Record a learning")
    append_parser.add_argument("project", help="Project root directory")
    append_parser.add_argument("-c", "--category", required=True, help="Category name")
    append_parser.add_argument(
        "--type",
        required=True,
        choices=[t.value for t in LearningType],
        help="Kind of learning",
    )
    append_parser.add_argument("--content", required=True, help="One-line statement")
    append_parser.add_argument("--context", help="Problem being solved")
    append_parser.add_argument("--why", help="Reasoning behind the approach")
    append_parser.add_argument("--rejected", help="Alternative considered and rejected")
    append_parser.add_argument("--tradeoffs", help="What became easier or harder")
    append_parser.add_argument("--breaking", help="What breaks if changed")

    # record-usage command
    usage_parser = subparsers.add_parser(
        "record-usage", help="Update usage counters from agent output"
    )
    usage_parser.add_argument("project", help="Project root directory")
    usage_parser.add_argument("files", nargs="+", help="Memory file names that were loaded")
    usage_parser.add_argument(
        "-o", "--output-file",
        required=True,
        help="File containing the agent's output",
    )
    usage_parser.add_argument(
        "--success",
        action="store_true",
        help="The feature completed successfully",
    )

    # stats command
    stats_parser = subparsers.add_parser("stats", help="Show memory usage counters")
    stats_parser.add_argument("project", help="Project root directory")

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Run the memory CLI with given arguments.

    Args:
        argv: Command-line arguments. Uses sys.argv[1:] if None.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "load": cmd_load,
        "summary": cmd_summary,
        "append": cmd_append,
        "record-usage": cmd_record_usage,
        "stats": cmd_stats,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    return handler(args)


if __name__ == "__main__":
    sys.exit(run_cli())
