from app.api.v1.endpoints.admin.common import *
from app.schemas.report import AttendanceReport, DashboardStats, RevenueReport
from app.services.report import report_service

router = APIRouter()


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/reports/attendance", response_model=AttendanceReport)
def attendance_report(
    start_date: Optional[date] = Query(None, description="First club-local day (default first of this month)"),
    end_date: Optional[date] = Query(None, description="Last club-local day, inclusive (default today)"),
    format: Literal["json", "csv"] = Query("json"),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Attendance Report

    Built from bookings marked attended or no_show for classes in the range.

    Returns:
        AttendanceReport: Totals, no_show_rate (percentage, two decimals),
        per-class breakdown, the ten most attended classes and detail rows.
        With format=csv, the per-class breakdown as a CSV attachment.

    Raises:
        HTTPException 400: INVALID_DATE_RANGE.
    """
    report = report_service.attendance_report(db, start_date=start_date, end_date=end_date)
    if format == "csv":
        return _csv_response(report_service.attendance_csv(report), "attendance-report.csv")
    return report


@router.get("/reports/revenue", response_model=RevenueReport)
def revenue_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    format: Literal["json", "csv"] = Query("json"),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Revenue Report

    Approved payments by review date, with the current pending totals and
    breakdowns by package and by location. Amounts exclude VAT.

    Raises:
        HTTPException 400: INVALID_DATE_RANGE.
    """
    report = report_service.revenue_report(db, start_date=start_date, end_date=end_date)
    if format == "csv":
        return _csv_response(report_service.revenue_csv(report), "revenue-report.csv")
    return report


@router.get("/dashboard/stats", response_model=DashboardStats)
def dashboard_stats(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return report_service.dashboard_stats(db)
