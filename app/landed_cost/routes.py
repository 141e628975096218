# app/landed_cost/routes.py

import logging
from decimal import InvalidOperation

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.auth.deps import Principal, requires_page
from app.db.session import get_db
from app.landed_cost.calculator import MAX_AMOUNT, MAX_QUANTITY, landed_cost
from app.landed_cost.dutify import DutifyError, get_rate_fetcher
from app.landed_cost.models import LandedCostCalculation
from app.plans.limits import LANDED_COST, LANDED_COST_HISTORY

log = logging.getLogger(__name__)

router = APIRouter(prefix="/dutify", tags=["landed-cost"])


class LandedCostBody(BaseModel):
    productValue: float = Field(allow_inf_nan=False, le=MAX_AMOUNT)
    quantity: int = Field(1, le=MAX_QUANTITY)
    shippingCost: float = Field(0.0, allow_inf_nan=False, le=MAX_AMOUNT)
    insurance: float = Field(0.0, allow_inf_nan=False, le=MAX_AMOUNT)
    destinationCountry: str
    hsCode: str
    currency: str = "USD"


def _iso(dt):
    return dt.isoformat() if dt else None


@router.post("/landed-cost")
def calculate(
    body: LandedCostBody,
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(LANDED_COST)),
    fetch_rates=Depends(get_rate_fetcher),
):
    hs_code = body.hsCode.strip().replace(".", "")
    country = body.destinationCountry.strip().upper()
    currency = (body.currency or "USD").strip().upper()
    if not hs_code or not country:
        raise HTTPException(status_code=400, detail="Missing hsCode or destinationCountry")

    try:
        rates = fetch_rates(
            hs_code=hs_code,
            destination_country=country,
            currency=currency,
            customs_value=body.productValue * body.quantity,
        )
    except DutifyError as e:
        log.warning("dutify lookup failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    try:
        result = landed_cost(
            product_value=body.productValue,
            quantity=body.quantity,
            shipping_cost=body.shippingCost,
            insurance=body.insurance,
            duty_rate=rates["duty_rate"],
            vat_rate=rates["vat_rate"],
        )
    except (ValueError, InvalidOperation) as e:
        raise HTTPException(status_code=400, detail=str(e))

    calc = LandedCostCalculation(
        user_id=principal.owner.id,
        hs_code=hs_code,
        destination_country=country,
        currency=currency,
        product_value=body.productValue,
        quantity=body.quantity,
        shipping_cost=body.shippingCost,
        insurance=body.insurance,
        duty_rate=result["dutyRate"],
        duty_amount=result["dutyAmount"],
        vat_rate=result["vatRate"],
        vat_amount=result["vatAmount"],
        total_landed_cost=result["totalLandedCost"],
        margin=result["margin"],
    )
    db.add(calc)
    db.commit()
    db.refresh(calc)

    return {"id": calc.id, "currency": currency, **result}


@router.post("/landed-cost/history")
def history(
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(LANDED_COST_HISTORY)),
):
    rows = (
        db.query(LandedCostCalculation)
        .filter(LandedCostCalculation.user_id == principal.owner.id)
        .order_by(desc(LandedCostCalculation.id))
        .all()
    )
    return {
        "calculations": [
            {
                "id": c.id,
                "hs_code": c.hs_code,
                "destination_country": c.destination_country,
                "currency": c.currency,
                "product_value": c.product_value,
                "quantity": c.quantity,
                "shipping_cost": c.shipping_cost,
                "insurance": c.insurance,
                "duty_rate": c.duty_rate,
                "duty_amount": c.duty_amount,
                "vat_rate": c.vat_rate,
                "vat_amount": c.vat_amount,
                "total_landed_cost": c.total_landed_cost,
                "margin": c.margin,
                "created_at": _iso(c.created_at),
            }
            for c in rows
        ]
    }
