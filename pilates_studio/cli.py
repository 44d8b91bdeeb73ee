from __future__ import annotations

import argparse
import json
from datetime import date

from pydantic import ValidationError

from .cache import MemoryCache
from .config import get_settings
from .db import build_engine, build_session_factory, db_session, init_db
from .errors import InvalidOperationError, NotFoundError
from .health import default_checks, run_health_checks
from .logging_utils import configure_logging
from .mapping import available_spots, full_name
from .registry import default_registry
from .schemas import ClassFilter, EnrollmentCreate, StudentCreate
from .seed import ensure_admin, seed_base


def cmd_init(args: argparse.Namespace) -> None:
    with db_session(args.session_factory) as s:
        seed_base(s, args.settings)
    print("Base de datos inicializada y datos base cargados.")


def cmd_list(args: argparse.Namespace) -> None:
    with db_session(args.session_factory) as s:
        scope = args.registry.scope(s, MemoryCache(), args.settings)
        if args.entity == "zones":
            for z in scope.resolve("ZoneService").list(active_only=False):
                print(f"{z.id} | {z.name} | capacidad {z.capacity} | {'activa' if z.is_active else 'inactiva'}")
        elif args.entity == "instructors":
            for i in scope.resolve("InstructorService").list():
                print(f"{i.id} | {full_name(i.first_name, i.last_name)} | {i.specializations or '-'}")
        elif args.entity == "students":
            for st in scope.resolve("StudentService").list(search=args.search):
                print(f"{st.id} | {full_name(st.first_name, st.last_name)} | {st.phone or '-'}")
        elif args.entity == "classes":
            flt = ClassFilter(start_date=date.today())
            for c in scope.resolve("ClassService").list(flt):
                print(
                    f"{c.id} | {c.class_date.isoformat()} {c.start_time:%H:%M}-{c.end_time:%H:%M} | "
                    f"{c.class_type or '-'} | {c.status} | libres {available_spots(c)}/{c.capacity_limit}"
                )
        elif args.entity == "packages":
            for p in scope.resolve("PackageService").list():
                print(f"{p.id} | {p.name} | {p.class_count} clases | {p.price} | {p.validity_days} días")


def cmd_create_admin(args: argparse.Namespace) -> None:
    with db_session(args.session_factory) as s:
        user = ensure_admin(s, args.email, args.password, args.settings)
        s.flush()
        print(f"Administrador listo: {user.id} | {user.email}")


def cmd_add_student(args: argparse.Namespace) -> None:
    dto = StudentCreate(
        first_name=args.first_name,
        last_name=args.last_name,
        email=args.email,
        password=args.password,
        phone=args.phone,
    )
    with db_session(args.session_factory) as s:
        scope = args.registry.scope(s, MemoryCache(), args.settings)
        student = scope.resolve("StudentService").create(dto)
        print(f"Estudiante creado: {student.id}")


def cmd_enroll(args: argparse.Namespace) -> None:
    dto = EnrollmentCreate(class_id=args.class_id, student_id=args.student_id, notes=args.notes)
    with db_session(args.session_factory) as s:
        scope = args.registry.scope(s, MemoryCache(), args.settings)
        enrollment = scope.resolve("ReservationService").enroll(dto)
        print(f"Inscripción confirmada: {enrollment.id}")
        if enrollment.purchase_id is None:
            print("Aviso: el estudiante no tiene un paquete activo.")


def cmd_cancel(args: argparse.Namespace) -> None:
    with db_session(args.session_factory) as s:
        scope = args.registry.scope(s, MemoryCache(), args.settings)
        scope.resolve("ReservationService").cancel(args.enrollment_id, reason=args.reason)
        print("Inscripción cancelada.")


def cmd_expire_purchases(args: argparse.Namespace) -> None:
    with db_session(args.session_factory) as s:
        scope = args.registry.scope(s, MemoryCache(), args.settings)
        count = scope.resolve("PurchaseService").expire_overdue()
        print(f"Compras expiradas: {count}")


def cmd_health(args: argparse.Namespace) -> None:
    with db_session(args.session_factory) as s:
        cache = MemoryCache()
        scope = args.registry.scope(s, cache, args.settings)
        report = run_health_checks(default_checks(s, cache, scope, args.settings))
        print(json.dumps(report, indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pilates_studio_cli", description="CLI Pilates Studio (administración)")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Crea tablas y carga datos base")
    p_init.set_defaults(func=cmd_init)

    p_list = sub.add_parser("list", help="Lista entidades")
    p_list.add_argument("entity", choices=["zones", "instructors", "students", "classes", "packages"])
    p_list.add_argument("--search", default=None, help="Filtro por nombre (solo students)")
    p_list.set_defaults(func=cmd_list)

    p_admin = sub.add_parser("create-admin", help="Crea o promueve una cuenta de administrador")
    p_admin.add_argument("--email", required=True)
    p_admin.add_argument("--password", required=True)
    p_admin.set_defaults(func=cmd_create_admin)

    p_student = sub.add_parser("add-student", help="Crea estudiante con su cuenta")
    p_student.add_argument("--first-name", required=True)
    p_student.add_argument("--last-name", required=True)
    p_student.add_argument("--email", required=True)
    p_student.add_argument("--password", required=True)
    p_student.add_argument("--phone", default=None)
    p_student.set_defaults(func=cmd_add_student)

    p_enroll = sub.add_parser("enroll", help="Inscribe un estudiante en una clase")
    p_enroll.add_argument("--class-id", type=int, required=True)
    p_enroll.add_argument("--student-id", type=int, required=True)
    p_enroll.add_argument("--notes", default=None)
    p_enroll.set_defaults(func=cmd_enroll)

    p_cancel = sub.add_parser("cancel", help="Cancela una inscripción")
    p_cancel.add_argument("--enrollment-id", type=int, required=True)
    p_cancel.add_argument("--reason", default=None)
    p_cancel.set_defaults(func=cmd_cancel)

    p_expire = sub.add_parser("expire-purchases", help="Marca como expiradas las compras vencidas")
    p_expire.set_defaults(func=cmd_expire_purchases)

    p_health = sub.add_parser("health", help="Estado de base de datos, caché y servicios (JSON)")
    p_health.set_defaults(func=cmd_health)

    return p


def main(argv: list[str] | None = None, *, engine=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    args.settings = get_settings()
    configure_logging(args.settings.log_level)
    engine = engine or build_engine(args.settings)
    init_db(engine)  # ensures tables
    args.session_factory = build_session_factory(engine)
    args.registry = default_registry()

    try:
        args.func(args)
    except (NotFoundError, InvalidOperationError) as exc:
        print(f"Error: {exc}")
        return 1
    except ValidationError as exc:
        for err in exc.errors():
            print(f"Error: {err['msg']}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
