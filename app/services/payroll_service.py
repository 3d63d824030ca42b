"""
Payroll Service Layer

Turns a month of attendance into a salary breakdown and persists it as a
PayrollRecord with its SalaryComponent rows.

Architecture:
- Router -> Service (this module) -> Models
- The arithmetic (components, deductions, pro-ration) is pure and has no
  database access; `generate_monthly_payroll` wires it to attendance rows.
- Each month's record is computed independently of any other month.
"""
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional
import logging
import math

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from app.models.attendance import AttendanceStatus, OfficerAttendance, StaffAttendance
from app.models.institution import Holiday
from app.models.officer import Officer
from app.models.payroll import PayeeType, PayrollRecord, PayrollStatus, ProrationBasis
from app.models.salary_component import ComponentKind, SalaryComponent
from app.models.user import StaffPosition, User
from app.services.audit import AuditService

logger = logging.getLogger(__name__)

# Monthly salary split into earning components
COMPONENT_SHARES = (
    ("basic_pay", 0.40),
    ("hra", 0.30),
    ("da", 0.10),
    ("special_allowance", 0.20),
)
BASIC_PAY_SHARE = 0.40

# Statutory deductions
PF_RATE = 0.12
PF_WAGE_CEILING = 15000
PROFESSIONAL_TAX_AMOUNT = 200
PROFESSIONAL_TAX_THRESHOLD = 10000
TDS_RATE = 0.05
TDS_THRESHOLD = 50000

STATUS_TRANSITIONS = {
    PayrollStatus.DRAFT.value: PayrollStatus.APPROVED.value,
    PayrollStatus.APPROVED.value: PayrollStatus.PAID.value,
}


@dataclass(frozen=True)
class SalaryConfig:
    monthly_salary: float
    hourly_rate: float
    overtime_multiplier: float = 1.5
    normal_working_hours: int = 8


STAFF_SALARY_CONFIG = {
    StaffPosition.CEO: SalaryConfig(monthly_salary=250000, hourly_rate=1500),
    StaffPosition.MD: SalaryConfig(monthly_salary=200000, hourly_rate=1200),
    StaffPosition.AGM: SalaryConfig(monthly_salary=150000, hourly_rate=900),
    StaffPosition.GM: SalaryConfig(monthly_salary=120000, hourly_rate=720),
    StaffPosition.MANAGER: SalaryConfig(monthly_salary=80000, hourly_rate=480),
    StaffPosition.ADMIN_STAFF: SalaryConfig(monthly_salary=50000, hourly_rate=300),
}


@dataclass
class PayComponent:
    component_type: str
    amount: int
    kind: str = ComponentKind.EARNING.value
    is_taxable: bool = True
    calculation_type: str = "computed"


@dataclass
class PayrollBreakdown:
    earnings: List[PayComponent]
    deductions: List[PayComponent]
    gross_salary: int
    total_deductions: int
    net_pay: int


@dataclass
class AttendanceSummary:
    working_days: int
    present_days: float = 0.0
    absent_days: float = 0.0
    leave_days: float = 0.0
    half_days: int = 0
    hours_worked: float = 0.0
    overtime_hours: float = 0.0
    records: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)


def round_half_up(value: float) -> int:
    """Whole currency units, .5 rounds up."""
    return int(math.floor(value + 0.5))


def generate_salary_components(
    config: SalaryConfig,
    present_days: float,
    total_days: float,
    overtime_hours: float = 0.0,
) -> List[PayComponent]:
    """
    Pro-rate each salary share by present_days / total_days. The ratio is not
    capped: days worked outside the divisor (weekends, holidays) pay extra.

    Overtime is added as its own component only when overtime_hours > 0.
    """
    if total_days is None or total_days <= 0:
        raise ValidationError("total_days must be greater than zero")
    if present_days is None or present_days < 0:
        raise ValidationError(
            "present_days cannot be negative",
            details={"present_days": present_days},
        )

    ratio = present_days / total_days
    components = [
        PayComponent(component_type=name, amount=round_half_up(config.monthly_salary * share * ratio))
        for name, share in COMPONENT_SHARES
    ]
    if overtime_hours and overtime_hours > 0:
        components.append(PayComponent(
            component_type="overtime",
            amount=round_half_up(overtime_hours * config.hourly_rate * config.overtime_multiplier),
        ))
    return components


def generate_deductions(gross_salary: float) -> List[PayComponent]:
    """Deductions depend on gross salary only, never on individual components."""
    pf_wage = min(gross_salary * BASIC_PAY_SHARE, PF_WAGE_CEILING)
    deductions = [PayComponent(
        component_type="pf",
        amount=round_half_up(pf_wage * PF_RATE),
        kind=ComponentKind.DEDUCTION.value,
        is_taxable=False,
        calculation_type="statutory",
    )]
    if gross_salary > PROFESSIONAL_TAX_THRESHOLD:
        deductions.append(PayComponent(
            component_type="professional_tax",
            amount=PROFESSIONAL_TAX_AMOUNT,
            kind=ComponentKind.DEDUCTION.value,
            is_taxable=False,
            calculation_type="fixed",
        ))
    if gross_salary > TDS_THRESHOLD:
        deductions.append(PayComponent(
            component_type="tds",
            amount=round_half_up(gross_salary * TDS_RATE),
            kind=ComponentKind.DEDUCTION.value,
            is_taxable=False,
            calculation_type="statutory",
        ))
    return deductions


def compute_payroll(
    config: SalaryConfig,
    present_days: float,
    total_days: float,
    overtime_hours: float = 0.0,
) -> PayrollBreakdown:
    earnings = generate_salary_components(config, present_days, total_days, overtime_hours)
    gross = sum(c.amount for c in earnings)
    deductions = generate_deductions(gross)
    total_deductions = sum(d.amount for d in deductions)
    return PayrollBreakdown(
        earnings=earnings,
        deductions=deductions,
        gross_salary=gross,
        total_deductions=total_deductions,
        net_pay=gross - total_deductions,
    )


def calendar_days(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def count_working_days(year: int, month: int, holidays: Iterable[date] = ()) -> int:
    """Monday-Friday in the month, minus holidays that fall on those days."""
    holiday_set = {h for h in holidays if h.year == year and h.month == month}
    count = 0
    for day in range(1, calendar_days(year, month) + 1):
        d = date(year, month, day)
        if d.weekday() < 5 and d not in holiday_set:
            count += 1
    return count


def resolve_divisor(
    basis: ProrationBasis,
    year: int,
    month: int,
    holidays: Iterable[date] = (),
    total_days: Optional[float] = None,
) -> float:
    """The day count present days are divided by. An explicit total_days wins."""
    if total_days is not None:
        if total_days <= 0:
            raise ValidationError("total_days must be greater than zero")
        return total_days
    if ProrationBasis(basis) == ProrationBasis.CALENDAR_DAYS:
        return calendar_days(year, month)
    return count_working_days(year, month, holidays)


def summarize_attendance(records: Iterable[Any], working_days: int) -> AttendanceSummary:
    summary = AttendanceSummary(working_days=working_days)
    for record in records:
        status = record.status.value if hasattr(record.status, "value") else record.status
        summary.records += 1
        summary.by_status[status] = summary.by_status.get(status, 0) + 1
        if status == AttendanceStatus.PRESENT.value:
            summary.present_days += 1
        elif status == AttendanceStatus.HALF_DAY.value:
            summary.present_days += 0.5
            summary.absent_days += 0.5
            summary.half_days += 1
        elif status == AttendanceStatus.LEAVE.value:
            summary.leave_days += 1
        elif status == AttendanceStatus.ABSENT.value:
            summary.absent_days += 1
        summary.hours_worked += record.hours_worked or 0.0
        summary.overtime_hours += record.overtime_hours or 0.0
    return summary


# ---------------------------------------------------------------------------
# Database layer
# ---------------------------------------------------------------------------

def _month_bounds(year: int, month: int):
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    return date(year, month, 1), date(year, month, calendar_days(year, month))


def load_holidays(db: Session, year: int, month: int, institution_id: Optional[int]) -> List[date]:
    """Institution holidays, or company holidays when institution_id is None."""
    start, end = _month_bounds(year, month)
    query = db.query(Holiday.date).filter(Holiday.date >= start, Holiday.date <= end)
    if institution_id is None:
        query = query.filter(Holiday.institution_id.is_(None))
    else:
        query = query.filter(Holiday.institution_id == institution_id)
    return [row[0] for row in query.all()]


def config_for_officer(officer: Officer) -> SalaryConfig:
    if not officer.monthly_salary or officer.monthly_salary <= 0:
        raise ValidationError(f"Officer {officer.id} has no monthly salary configured")
    return SalaryConfig(
        monthly_salary=officer.monthly_salary,
        hourly_rate=officer.hourly_rate or 0.0,
        overtime_multiplier=officer.overtime_multiplier or 1.5,
    )


def config_for_staff(user: User) -> SalaryConfig:
    position = user.position
    if position is None and user.is_ceo:
        position = StaffPosition.CEO
    config = STAFF_SALARY_CONFIG.get(StaffPosition(position)) if position else None
    if config is None:
        raise ValidationError(f"User {user.id} has no staff position with a salary configuration")
    return config


def _resolve_payee(db: Session, payee_type: PayeeType, payee_id: int):
    """Returns (name, position, salary config, attendance model filter, holiday institution)."""
    if PayeeType(payee_type) == PayeeType.OFFICER:
        officer = db.query(Officer).filter(Officer.id == payee_id).first()
        if not officer:
            raise NotFoundError("Officer not found")
        home = officer.home_institution
        return (
            officer.full_name,
            "officer",
            config_for_officer(officer),
            (OfficerAttendance, OfficerAttendance.officer_id == payee_id),
            home.id if home else None,
        )
    user = db.query(User).filter(User.id == payee_id).first()
    if not user:
        raise NotFoundError("Staff member not found")
    config = config_for_staff(user)
    position = user.position.value if user.position else StaffPosition.CEO.value
    return (
        user.display_name,
        position,
        config,
        (StaffAttendance, StaffAttendance.user_id == payee_id),
        None,
    )


def attendance_for_month(db: Session, model, criterion, year: int, month: int) -> List[Any]:
    start, end = _month_bounds(year, month)
    return db.query(model).filter(criterion, model.date >= start, model.date <= end).order_by(model.date).all()


def monthly_attendance_summary(
    db: Session,
    payee_type: PayeeType,
    payee_id: int,
    year: int,
    month: int,
) -> AttendanceSummary:
    if PayeeType(payee_type) == PayeeType.OFFICER:
        officer = db.query(Officer).filter(Officer.id == payee_id).first()
        if not officer:
            raise NotFoundError("Officer not found")
        home = officer.home_institution
        model, criterion, institution_id = OfficerAttendance, OfficerAttendance.officer_id == payee_id, home.id if home else None
    else:
        if not db.query(User).filter(User.id == payee_id).first():
            raise NotFoundError("Staff member not found")
        model, criterion, institution_id = StaffAttendance, StaffAttendance.user_id == payee_id, None
    holidays = load_holidays(db, year, month, institution_id)
    rows = attendance_for_month(db, model, criterion, year, month)
    return summarize_attendance(rows, count_working_days(year, month, holidays))


def _component_rows(breakdown: PayrollBreakdown) -> List[SalaryComponent]:
    return [
        SalaryComponent(
            kind=c.kind,
            component_type=c.component_type,
            amount=c.amount,
            is_taxable=c.is_taxable,
            calculation_type=c.calculation_type,
        )
        for c in breakdown.earnings + breakdown.deductions
    ]


def generate_monthly_payroll(
    db: Session,
    payee_type: PayeeType,
    payee_id: int,
    month: int,
    year: int,
    basis: ProrationBasis = ProrationBasis.WORKING_DAYS,
    total_days: Optional[float] = None,
    actor: Optional[User] = None,
) -> PayrollRecord:
    """
    Compute and store one payee's payroll for a month.

    An existing draft is recomputed in place; an approved or paid record is
    never overwritten.
    """
    payee_type = PayeeType(payee_type)
    basis = ProrationBasis(basis)
    name, position, config, (model, criterion), holiday_institution = _resolve_payee(db, payee_type, payee_id)

    holidays = load_holidays(db, year, month, holiday_institution)
    working_days = count_working_days(year, month, holidays)
    rows = attendance_for_month(db, model, criterion, year, month)
    summary = summarize_attendance(rows, working_days)
    divisor = resolve_divisor(basis, year, month, holidays, total_days)
    breakdown = compute_payroll(config, summary.present_days, divisor, summary.overtime_hours)

    record = db.query(PayrollRecord).filter(
        PayrollRecord.payee_type == payee_type.value,
        PayrollRecord.payee_id == payee_id,
        PayrollRecord.month == month,
        PayrollRecord.year == year,
    ).first()
    if record and record.status != PayrollStatus.DRAFT.value:
        raise ConflictError(
            f"Payroll for {month}/{year} is already {record.status}",
            details={"payroll_id": record.id, "status": record.status},
        )

    try:
        if record is None:
            record = PayrollRecord(
                payee_type=payee_type.value,
                payee_id=payee_id,
                month=month,
                year=year,
                status=PayrollStatus.DRAFT.value,
            )
            db.add(record)
        else:
            record.components.clear()

        record.payee_name = name
        record.position = position
        record.working_days = working_days
        record.present_days = summary.present_days
        record.absent_days = summary.absent_days
        record.leave_days = summary.leave_days
        record.overtime_hours = summary.overtime_hours
        record.proration_basis = basis.value if total_days is None else "explicit"
        record.proration_divisor = divisor
        record.monthly_salary = config.monthly_salary
        record.gross_salary = breakdown.gross_salary
        record.total_deductions = breakdown.total_deductions
        record.net_pay = breakdown.net_pay
        record.components.extend(_component_rows(breakdown))
        db.flush()

        AuditService.log(
            db,
            action="generate_payroll",
            entity_type="payroll_record",
            entity_id=record.id,
            user_id=actor.id if actor else None,
            user_role=actor.role if actor else None,
            details={"payee_type": payee_type.value, "payee_id": payee_id, "month": month, "year": year},
            after_state={"gross_salary": record.gross_salary, "net_pay": record.net_pay, "divisor": divisor},
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Payroll generation conflict for {payee_type.value} {payee_id}: {e}")
        raise ConflictError("Payroll for this period was created concurrently; retry")
    except Exception:
        db.rollback()
        raise

    db.refresh(record)
    logger.info(
        f"Generated payroll {record.id} for {payee_type.value} {payee_id} ({month}/{year})",
        extra={"gross": record.gross_salary, "net": record.net_pay},
    )
    return record


def get_payroll_record(db: Session, record_id: int) -> PayrollRecord:
    record = db.query(PayrollRecord).filter(PayrollRecord.id == record_id).first()
    if not record:
        raise NotFoundError("Payroll record not found")
    return record


def list_payroll_records(
    db: Session,
    month: Optional[int] = None,
    year: Optional[int] = None,
    payee_type: Optional[PayeeType] = None,
    status: Optional[PayrollStatus] = None,
) -> List[PayrollRecord]:
    query = db.query(PayrollRecord)
    if month is not None:
        query = query.filter(PayrollRecord.month == month)
    if year is not None:
        query = query.filter(PayrollRecord.year == year)
    if payee_type is not None:
        query = query.filter(PayrollRecord.payee_type == PayeeType(payee_type).value)
    if status is not None:
        query = query.filter(PayrollRecord.status == PayrollStatus(status).value)
    return query.order_by(PayrollRecord.year.desc(), PayrollRecord.month.desc(), PayrollRecord.id).all()


def update_payroll_status(db: Session, record_id: int, new_status: PayrollStatus, actor: Optional[User] = None) -> PayrollRecord:
    record = get_payroll_record(db, record_id)
    new_status = PayrollStatus(new_status).value
    if STATUS_TRANSITIONS.get(record.status) != new_status:
        raise InvalidTransitionError(
            f"Cannot move payroll from {record.status} to {new_status}",
            details={"status": record.status, "requested": new_status},
        )
    before = {"status": record.status}
    try:
        record.status = new_status
        AuditService.log(
            db,
            action="update_payroll_status",
            entity_type="payroll_record",
            entity_id=record.id,
            user_id=actor.id if actor else None,
            user_role=actor.role if actor else None,
            details={"payee_id": record.payee_id, "month": record.month, "year": record.year},
            before_state=before,
            after_state={"status": new_status},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(record)
    return record
