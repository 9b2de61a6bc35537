import logging

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from config import get_settings
from csv_utils import export_catalog, export_results
from database import get_session_factory, init_db, session_scope
from formatting import format_currency, from_cents
from fx_rates import MissingRateError
from periods import resolve_period
from schemas import (
    CatalogEntry,
    DailyResult,
    DailyResultOut,
    ImportKind,
    ImportResultOut,
    PeriodIn,
    StoredResultOut,
)
from services import (
    BudgetService,
    BudgetStore,
    CatalogImportService,
    MalformedRowError,
)

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Recurring Budget")


def get_db():
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def get_factory():
    return get_session_factory()


@app.on_event("startup")
def startup_event():
    init_db()


def _result_out(result: DailyResult) -> DailyResultOut:
    return DailyResultOut(
        date=result.date,
        total=result.total,
        formatted_total=format_currency(result.total),
        comment=result.comment,
    )


def _stored_results(db: Session) -> list[DailyResult]:
    return [
        DailyResult(date=row.date, total=from_cents(row.total_cents), comment=row.comment or "")
        for row in BudgetStore(db).get_daily_results()
        if row.total_cents is not None
    ]


@app.post("/budget/update", response_model=list[DailyResultOut])
def update_budget(factory=Depends(get_factory)):
    try:
        with session_scope(factory) as db:
            store = BudgetStore(db)
            results = BudgetService(store, store).update_budget()
    except (MissingRateError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return [_result_out(result) for result in results]


@app.post("/budget/sort", response_model=list[CatalogEntry])
def sort_recurring_transactions(factory=Depends(get_factory)):
    try:
        with session_scope(factory) as db:
            store = BudgetStore(db)
            ranked = BudgetService(store, store).sort_catalog()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ranked


@app.get("/budget/results", response_model=list[StoredResultOut])
def list_results(db: Session = Depends(get_db)):
    return [
        StoredResultOut(
            date=row.date,
            total=from_cents(row.total_cents) if row.total_cents is not None else None,
            comment=row.comment,
        )
        for row in BudgetStore(db).get_daily_results()
    ]


@app.get("/budget/catalog", response_model=list[CatalogEntry])
def list_catalog(db: Session = Depends(get_db)):
    return BudgetStore(db).get_transaction_catalog()


@app.post("/budget/dates")
def seed_target_dates(payload: PeriodIn, factory=Depends(get_factory)):
    try:
        period = resolve_period(payload.period, payload.start, payload.end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    dates = period.days()
    with session_scope(factory) as db:
        BudgetStore(db).replace_target_dates(dates)
    logger.info(f"seed_dates: period={period.slug} start={period.start} end={period.end}")
    return {"period": period.slug, "dates": [d.isoformat() for d in dates]}


@app.post("/import/{kind}", response_model=ImportResultOut)
async def import_csv(
    kind: ImportKind,
    file: UploadFile = File(...),
    factory=Depends(get_factory),
):
    content = (await file.read()).decode("utf-8-sig")
    try:
        with session_scope(factory) as db:
            service = CatalogImportService(db)
            handlers = {
                ImportKind.catalog: service.replace_catalog,
                ImportKind.rates: service.replace_rates,
                ImportKind.dates: service.replace_dates,
                ImportKind.ranks: service.replace_ranks,
            }
            count = handlers[kind](content)
    except MalformedRowError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.info(f"import: kind={kind.value} rows={count}")
    return ImportResultOut(kind=kind, rows=count)


@app.get("/export/catalog.csv")
def export_catalog_csv(db: Session = Depends(get_db)):
    csv_text = export_catalog(BudgetStore(db).get_transaction_catalog())
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="recurring_transactions.csv"'},
    )


@app.get("/export/results.csv")
def export_results_csv(db: Session = Depends(get_db)):
    csv_text = export_results(_stored_results(db))
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="budget_results.csv"'},
    )


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
