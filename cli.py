import argparse
import os
import shutil

from config import YamlConfig
from exceptions import WorkoutValidationError
from export_service import ExportService, backup_filename
from logger import setup_logger
from models import SetReps, SetWeight
from stats_service import StatisticsService
from tools import WeightConverter
from workout_service import WorkoutService


def _service(db_path: str | None, yaml_path: str) -> WorkoutService:
    settings = YamlConfig(yaml_path).settings()
    setup_logger(level=settings.log_level)
    if db_path:
        settings = settings.model_copy(update={"db_path": db_path})
    return WorkoutService.from_settings(settings)


def export_data(db_path: str, yaml_path: str, fmt: str, output_dir: str = ".") -> str:
    exports = ExportService(_service(db_path, yaml_path))
    data = exports.export_json() if fmt == "json" else exports.export_csv()
    out_path = os.path.join(output_dir, backup_filename(fmt))
    with open(out_path, "w", encoding="utf-8", newline="") as f:
        f.write(data)
    return out_path


def import_data(json_path: str, db_path: str, yaml_path: str) -> None:
    exports = ExportService(_service(db_path, yaml_path))
    with open(json_path, "r", encoding="utf-8") as f:
        exports.import_json(f.read())


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def demo_data(db_path: str, yaml_path: str) -> None:
    """Populate the log with a demo workout if the history is empty."""
    service = _service(db_path, yaml_path)
    if service.history():
        print("Log already contains workouts")
        return
    service.start_workout()
    ex = service.add_exercise("Bench Press")
    for weight, reps in ((135, 10), (155, 8)):
        entry = service.add_set(ex.id)
        service.update_set(ex.id, entry.id, SetWeight(weight))
        service.update_set(ex.id, entry.id, SetReps(reps))
    service.finish_workout("Demo session")
    print("Demo data inserted")


def main() -> None:
    parser = argparse.ArgumentParser(description="FitTrack utility commands")
    parser.add_argument("--yaml", default="settings.yaml")
    sub = parser.add_subparsers(dest="cmd", required=True)

    exp = sub.add_parser("export")
    exp.add_argument("--db", default=None)
    exp.add_argument("--fmt", choices=["json", "csv"], default="json")
    exp.add_argument("--out", default=".")

    imp = sub.add_parser("import")
    imp.add_argument("--in", dest="src", required=True)
    imp.add_argument("--db", default=None)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="fittrack.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="fittrack.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default=None)

    summ = sub.add_parser("summary")
    summ.add_argument("--db", default=None)

    conv = sub.add_parser("convert")
    conv.add_argument("--weight", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lb"], required=True)

    orm = sub.add_parser("one-rm")
    orm.add_argument("--weight", type=float, required=True)
    orm.add_argument("--reps", type=int, required=True)

    args = parser.parse_args()

    if args.cmd == "export":
        print(export_data(args.db, args.yaml, args.fmt, args.out))
    elif args.cmd == "import":
        import_data(args.src, args.db, args.yaml)
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml)
    elif args.cmd == "summary":
        text = ExportService(_service(args.db, args.yaml)).last_session_text()
        print(text or "No workout history yet.")
    elif args.cmd == "convert":
        if args.unit == "kg":
            print(f"{args.weight} kg = {WeightConverter.kg_to_lb(args.weight)} lb")
        else:
            print(f"{args.weight} lb = {WeightConverter.lb_to_kg(args.weight)} kg")
    elif args.cmd == "one-rm":
        try:
            result = StatisticsService.estimate_one_rep_max(args.weight, args.reps)
        except WorkoutValidationError as e:
            parser.error(str(e))
        print(f"Estimated 1RM: {result['one_rm']:.1f}")
        for pct, load in result["percentages"].items():
            print(f"{pct}%: {load:.1f}")


if __name__ == "__main__":
    main()
