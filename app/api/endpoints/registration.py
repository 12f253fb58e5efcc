"""
Affiliate registration endpoints: local store, ledger store, availability and
the full server-side workflow.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import time
from app.api.deps import get_db, get_ledger_db
from app.errors import AffiliateError, ConflictError
from app.models.db.enums import Availability
from app.models.schemas.registration import (
    AffiliateRegistrationRequest,
    AffiliateRegistrationResponse,
    CheckAffiliateResponse,
    LedgerRecordRef,
    MainSystemRegistrationRequest,
    MainSystemRegistrationResponse,
    RegistrationRequest,
    RegistrationResponse,
)
from app.services import email as email_service
from app.services.affiliate_store import insert_affiliate
from app.services.availability import check_code_availability, check_email_availability
from app.services.ledger import ledger_code_exists, ledger_email_exists, register_ledger_affiliate
from app.services.registration import RegistrationForm, RegistrationOrchestrator
from app.services.registration_backend import DatabaseRegistrationBackend
from app.utils import get_logger, log_business_event, log_performance

router = APIRouter()
logger = get_logger(__name__)

@router.post(
    "/register-affiliate",
    response_model=AffiliateRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register affiliate (local store)",
    description="Create the affiliate profile and send the confirmation email"
)
async def register_affiliate(
    payload: AffiliateRegistrationRequest,
    request: Request,
    db: Session = Depends(get_db)
) -> AffiliateRegistrationResponse:
    """Insert the local profile; unique violations come back as a field-tagged 409."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Affiliate registration started",
        affiliate_code=payload.affiliate_code,
        has_line_user=bool(payload.line_user_id),
        selected_product=payload.selected_product,
        request_id=request_id
    )

    try:
        affiliate = insert_affiliate(
            db,
            name=payload.name.strip(),
            email=str(payload.email),
            phone=payload.phone_digits,
            affiliate_code=payload.affiliate_code,
            note=payload.note,
            selected_product=payload.selected_product,
            line_user_id=payload.line_user_id,
        )

        email_result = await run_in_threadpool(
            email_service.send_confirmation_email,
            affiliate.email,
            email_service.first_name_of(affiliate.name),
            affiliate.affiliate_code,
        )

        log_business_event(
            event_type="affiliate_created",
            details={
                "affiliate_id": affiliate.id,
                "selected_product": affiliate.selected_product,
                "email_sent": email_result.success,
            },
            affiliate_code=affiliate.affiliate_code,
            request_id=request_id
        )

        duration_ms = (time.time() - start_time) * 1000
        log_performance(
            operation="register_affiliate",
            duration_ms=duration_ms,
            additional_data={"affiliate_id": affiliate.id}
        )

        return AffiliateRegistrationResponse(
            success=True,
            message="Registration successful",
            affiliate_id=affiliate.id,
            affiliate_code=affiliate.affiliate_code,
            email_sent=email_result.success,
        )

    except (HTTPException, AffiliateError):
        raise
    except Exception as e:
        logger.error(
            "Affiliate registration failed: unexpected error",
            error=str(e),
            error_type=type(e).__name__,
            affiliate_code=payload.affiliate_code,
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed due to internal error"
        )

@router.post(
    "/register-affiliate-main",
    response_model=MainSystemRegistrationResponse,
    summary="Register affiliate (ledger store)",
    description="Create the commission-bearing ledger record with the fixed commission configuration"
)
async def register_affiliate_main(
    payload: MainSystemRegistrationRequest,
    request: Request,
    ledger_db: Session = Depends(get_ledger_db)
) -> MainSystemRegistrationResponse:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Ledger registration started",
        affiliate_code=payload.generated_code,
        request_id=request_id
    )

    try:
        if ledger_code_exists(ledger_db, payload.generated_code):
            raise ConflictError("This affiliate code is already in use", field="generatedCode")
        if ledger_email_exists(ledger_db, str(payload.email)):
            raise ConflictError("This email is already registered", field="email")

        record = register_ledger_affiliate(
            ledger_db,
            name=payload.name.strip(),
            email=str(payload.email),
            phone=payload.tel_digits,
            code=payload.generated_code,
        )

        log_business_event(
            event_type="ledger_affiliate_created",
            details={"ledger_id": record.id},
            affiliate_code=record.code,
            request_id=request_id
        )

        duration_ms = (time.time() - start_time) * 1000
        log_performance(
            operation="register_affiliate_main",
            duration_ms=duration_ms,
            additional_data={"ledger_id": record.id}
        )

        return MainSystemRegistrationResponse(
            success=True,
            message="Registered in main system",
            data=LedgerRecordRef(id=record.id, code=record.code),
        )

    except (HTTPException, AffiliateError):
        raise
    except Exception as e:
        logger.error(
            "Ledger registration failed: unexpected error",
            error=str(e),
            error_type=type(e).__name__,
            affiliate_code=payload.generated_code,
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Main system registration failed due to internal error"
        )

@router.get(
    "/check-affiliate",
    response_model=CheckAffiliateResponse,
    summary="Check code or email availability",
    description="Advisory lookup; the unique constraints on insert remain authoritative"
)
async def check_affiliate(
    request: Request,
    email: Optional[str] = Query(None),
    affiliate_code: Optional[str] = Query(None, alias="affiliateCode"),
    db: Session = Depends(get_db),
    ledger_db: Session = Depends(get_ledger_db)
):
    request_id = request.headers.get("X-Request-ID", "unknown")

    # Email takes precedence when both are given
    if email:
        result = check_email_availability(db, email)
    elif affiliate_code:
        result = check_code_availability(ledger_db, affiliate_code)
    else:
        result = None

    if result == Availability.ERROR:
        logger.warning(
            "Availability check could not reach the store",
            affiliate_code=affiliate_code,
            email=email,
            request_id=request_id
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"success": False, "exists": None, "message": "Availability could not be determined"}
        )

    return CheckAffiliateResponse(exists=result == Availability.TAKEN)

@router.post(
    "/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Run the full registration workflow",
    description="Validate, check the code, write both stores and send the confirmation email"
)
async def register(
    payload: RegistrationRequest,
    request: Request,
    db: Session = Depends(get_db),
    ledger_db: Session = Depends(get_ledger_db)
) -> RegistrationResponse:
    """Ledger failures are reported as ``mainSystemSuccess: false``, not as an error."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    form = RegistrationForm(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        affiliate_code=payload.affiliate_code,
        pdpa_consent=payload.pdpa_consent,
        note=payload.note,
        selected_product=payload.selected_product,
        line_user_id=payload.line_user_id,
    )
    backend = DatabaseRegistrationBackend(db, ledger_db, mailer=email_service.send_confirmation_email)

    try:
        result = await RegistrationOrchestrator(backend).submit(form)
    except AffiliateError:
        raise
    except Exception as e:
        logger.error(
            "Registration workflow failed: unexpected error",
            error=str(e),
            error_type=type(e).__name__,
            affiliate_code=payload.affiliate_code,
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed due to internal error"
        )

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="register_workflow",
        duration_ms=duration_ms,
        additional_data={"main_system_success": result.main_system_success}
    )

    return RegistrationResponse(
        success=True,
        message="Registration successful" if result.main_system_success
        else "Registration saved; main system sync pending",
        affiliate_code=result.affiliate_code,
        email_sent=result.email_sent,
        main_system_success=result.main_system_success,
    )
