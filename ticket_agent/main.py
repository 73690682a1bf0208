from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from dotenv import load_dotenv

from ticket_agent.config import ensure_api_key, load_settings
from ticket_agent.errors import ProjectNotFound, TicketAgentError
from ticket_agent.events import StreamEvent
from ticket_agent.pipeline_edit import EditPipeline
from ticket_agent.pipeline_tickets import TicketPipeline
from ticket_agent.steps.document import DocumentInput
from ticket_agent.storage import ProjectStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Turn a project brief into development tickets")
    parser.add_argument("--mode", choices=["mock", "live"])
    parser.add_argument("--provider", choices=["openai", "gemini"])
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("--data-dir", help="Directory holding project JSON files")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate tickets from a brief")
    source = generate.add_mutually_exclusive_group(required=True)
    source.add_argument("--text")
    source.add_argument("--file", help="PDF or text file")
    generate.add_argument("--project-id")

    clarify = subparsers.add_parser("clarify", help="Regenerate tickets with clarification answers")
    clarify.add_argument("project_id")
    clarify.add_argument("--answer", nargs=2, action="append", default=[], metavar=("QUESTION", "ANSWER"))
    clarify.add_argument("--answers-file", help="YAML mapping of question to answer")
    clarify.add_argument("--no-validate", action="store_true")

    edit = subparsers.add_parser("edit", help="Edit tickets with a natural-language instruction")
    edit.add_argument("project_id")
    edit.add_argument("instruction")

    show = subparsers.add_parser("show", help="Print a stored project")
    show.add_argument("project_id")

    cost = subparsers.add_parser("cost", help="Print token usage and cost of a project")
    cost.add_argument("project_id")
    return parser


def _print_event(event: StreamEvent) -> None:
    print(f"[{event.type}] {event.message}", flush=True)


def _collect_answers(pairs: List[List[str]], answers_file: Optional[str]) -> Dict[str, str]:
    answers: Dict[str, str] = {}
    if answers_file:
        loaded = yaml.safe_load(Path(answers_file).read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise TicketAgentError(f"{answers_file} must contain a mapping of question to answer")
        answers.update({str(key): str(value) for key, value in loaded.items()})
    answers.update({question: answer for question, answer in pairs})
    return answers


def _load_or_fail(store: ProjectStore, project_id: str):
    project = store.load(project_id)
    if project is None:
        raise ProjectNotFound(project_id)
    return project


def run_command(args: argparse.Namespace) -> int:
    settings = load_settings(
        Path(args.config) if args.config else None,
        mode=args.mode,
        provider=args.provider,
        data_dir=args.data_dir,
    )
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store = ProjectStore(settings.data_dir)

    if args.command == "show":
        print(json.dumps(_load_or_fail(store, args.project_id).to_dict(), indent=2, ensure_ascii=False))
        return 0
    if args.command == "cost":
        print(json.dumps(_load_or_fail(store, args.project_id).cost.to_dict(), indent=2))
        return 0

    ensure_api_key(settings)
    if args.command == "generate":
        document = DocumentInput(text=args.text) if args.text else DocumentInput.from_path(Path(args.file))
        pipeline = TicketPipeline(settings, store=store)
        project = asyncio.run(pipeline.run(document, project_id=args.project_id, on_event=_print_event))
        if project.clarifications:
            print("\nOpen questions (answer with `clarify`):")
            for question in project.clarifications:
                print(f"- {question}")
    elif args.command == "clarify":
        answers = _collect_answers(args.answer, args.answers_file)
        pipeline = TicketPipeline(settings, store=store)
        project = asyncio.run(
            pipeline.run_with_clarifications(
                args.project_id,
                answers,
                on_event=_print_event,
                validate=False if args.no_validate else None,
            )
        )
    else:
        project = asyncio.run(EditPipeline(settings, store=store).run(args.project_id, args.instruction))

    print(f"\nProject {project.id}: {len(project.tickets)} ticket(s), ${project.cost.usd:.4f}")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()
    args = build_parser().parse_args(argv)
    try:
        code = run_command(args)
    except ProjectNotFound as exc:
        print(str(exc), file=sys.stderr)
        code = 2
    except TicketAgentError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
