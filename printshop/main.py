from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from printshop.config import settings
from printshop.errors import ConfigurationError, CostingError, NotFoundError, ValidationError
from printshop.logging_setup import configure_logging
from printshop.routers import customers, invoices, job_costing, jobs, products, reports

configure_logging(settings.log_level)

app = FastAPI(title='Print Shop Costing')

app.include_router(customers.router)
app.include_router(products.router)
app.include_router(jobs.router)
app.include_router(job_costing.router)
app.include_router(invoices.router)
app.include_router(reports.router)

STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ConfigurationError, 409),
    (ValidationError, 400),
)


def status_for(exc: CostingError) -> int:
    for error_cls, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status_code
    return 400


@app.exception_handler(CostingError)
def costing_error_handler(request: Request, exc: CostingError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content={'detail': str(exc)})


@app.get('/health', response_class=PlainTextResponse)
def health() -> str:
    return 'ok'
