from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from ovadeck.core.config import Settings, load_settings
from ovadeck.core.document.model import CourseDocument, DocumentError
from ovadeck.core.plan.slide_plan import build_slide_plan
from ovadeck.core.quality import evaluate_quality
from ovadeck.core.render.overview import render_overview
from ovadeck.core.render.storyboard import prepare_units, render_storyboard
from ovadeck.core.validate.schema_validate import COURSE_SCHEMA_PATH, validate_document

MAX_SHOWN_ERRORS = 30


def _setup_logging(settings: Settings, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _load_json(path: Path) -> object:
    return json.loads(path.read_text(encoding="utf-8"))


def _load_input(path: Path) -> object | None:
    if not path.exists():
        print(f"[NG] input not found: {path}")
        return None
    try:
        return _load_json(path)
    except (OSError, json.JSONDecodeError) as e:
        print(f"[NG] cannot read JSON: {path}")
        print(f"      detail: {e}")
        return None


def _print_errors(errors: list[str]) -> None:
    for m in errors[:MAX_SHOWN_ERRORS]:
        print(f"  - {m}")
    if len(errors) > MAX_SHOWN_ERRORS:
        print(f"  ... ({len(errors)} errors)")


def _document(data: object) -> CourseDocument | None:
    try:
        return CourseDocument.from_dict(data)
    except DocumentError as e:
        print(f"[NG] {e}")
        return None


def cmd_paths(args: argparse.Namespace) -> int:
    s: Settings = args.settings
    print(f"schema.course: {COURSE_SCHEMA_PATH}")
    print(f"assets_dir: {s.assets_dir}")
    print(f"course_root_dir: {s.course_root_dir or '-'}")
    print(f"offline: {s.offline}")
    print(f"asset_workers: {s.asset_workers}")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    in_path = Path(args.input).resolve()
    data = _load_input(in_path)
    if data is None:
        return 2
    errors = validate_document(data)
    if errors:
        print(f"[NG] {in_path.as_posix()}")
        _print_errors(errors)
        return 2
    print(f"[OK] {in_path.as_posix()} conforms to {COURSE_SCHEMA_PATH.name}")
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    data = _load_input(Path(args.input).resolve())
    if data is None:
        return 2
    doc = _document(data)
    if doc is None:
        return 2

    bundles = list(prepare_units(doc, args.settings))
    plan = build_slide_plan([len(b.visual_spec.popups) for b in bundles], [b.unit.unit_id for b in bundles])
    print(f"slides: {plan.total} (cover={plan.cover}, menu={plan.menu})")
    for b, slots in zip(bundles, plan.units):
        popups = ", ".join(str(n) for n in slots.popup_slide_nos) or "-"
        print(
            f"  {slots.slide_no:>3}  {b.unit.unit_id:<6} mode={b.mode.value:<13} "
            f"layout={b.layout.value:<13} popups={popups}"
        )
    return 0


def cmd_quality(args: argparse.Namespace) -> int:
    data = _load_input(Path(args.input).resolve())
    if data is None:
        return 2
    doc = _document(data)
    if doc is None:
        return 2

    report = evaluate_quality(doc, expected_hours=args.hours, settings=args.settings)
    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
        return 0
    print(f"score: {report.overall_score}/100")
    for item in report.items:
        tag = "[OK]" if item.status.value == "ok" else "[NG]"
        print(f"{tag} {item.label}: {item.detail}")
    for s in report.fix_suggestions:
        print(f"  -> {s}")
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    in_path = Path(args.input).resolve()
    out_path = Path(args.out).resolve()

    data = _load_input(in_path)
    if data is None:
        return 2

    if not args.no_validate:
        errors = validate_document(data)
        if errors:
            print(f"[NG] {in_path.as_posix()}")
            _print_errors(errors)
            print("[NG] validation failed; render aborted")
            return 2
        print("[OK] document")

    doc = _document(data)
    if doc is None:
        return 2

    settings: Settings = args.settings.with_overrides(
        offline=True if args.offline else None,
        asset_workers=args.workers,
    )
    try:
        if args.mode == "overview":
            render_overview(doc, out_path)
        else:
            render_storyboard(doc, out_path, settings=settings)
    except OSError as e:
        print("[NG] render failed")
        print(f"      detail: {e}")
        return 2
    print(f"[OK] rendered {args.mode}: {out_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ovadeck")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_paths = sub.add_parser("paths", help="show schema path and asset settings")
    p_paths.set_defaults(func=cmd_paths)

    p_val = sub.add_parser("validate", help="validate a course document against the schema")
    p_val.add_argument("--in", dest="input", required=True, help="course document JSON")
    p_val.set_defaults(func=cmd_validate)

    p_plan = sub.add_parser("plan", help="print slide numbering, visual modes and layouts")
    p_plan.add_argument("--in", dest="input", required=True, help="course document JSON")
    p_plan.set_defaults(func=cmd_plan)

    p_q = sub.add_parser("quality", help="instructional quality checklist")
    p_q.add_argument("--in", dest="input", required=True, help="course document JSON")
    p_q.add_argument("--hours", type=float, default=None, help="expected duration (default: project.duration_hours)")
    p_q.add_argument("--json", action="store_true", help="print the report as JSON")
    p_q.set_defaults(func=cmd_quality)

    p_rnd = sub.add_parser("render", help="render the .pptx storyboard or overview deck")
    p_rnd.add_argument("--in", dest="input", required=True, help="course document JSON")
    p_rnd.add_argument("--out", required=True, help="output .pptx path")
    p_rnd.add_argument(
        "--mode",
        choices=("storyboard", "overview"),
        default="storyboard",
        help="navigable storyboard (default) or linear production overview",
    )
    p_rnd.add_argument("--offline", action="store_true", help="no image search; text-only visuals")
    p_rnd.add_argument("--workers", type=int, default=None, help="concurrent asset lookups")
    p_rnd.add_argument("--no-validate", action="store_true", help="skip schema validation")
    p_rnd.add_argument("--verbose", "-v", action="store_true", default=argparse.SUPPRESS, help="debug logging")
    p_rnd.set_defaults(func=cmd_render)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    args.settings = load_settings()
    _setup_logging(args.settings, args.verbose)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
