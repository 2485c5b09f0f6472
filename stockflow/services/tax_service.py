"""Global tax configuration and purchase tax arithmetic.

There is exactly one global configuration row. It is created lazily with
defaults on first read; a concurrent first read that loses the race on the
partial unique index re-reads the winner's row.
"""
import copy
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from stockflow.core.constants import DEFAULT_GST, DEFAULT_PLATFORM_FEE, FEE_TYPES, GST_TYPES
from stockflow.core.errors import Forbidden, NotFound, ValidationFailed
from stockflow.models.tax_config import TaxChangeEntry, TaxConfig
from stockflow.services.movement_service import log_movement

logger = logging.getLogger(__name__)


def _find_global(db):
    return db.execute(
        select(TaxConfig).where(TaxConfig.is_global.is_(True)).limit(1)
    ).scalar_one_or_none()


def _default_config():
    return TaxConfig(
        is_global=True,
        gst=copy.deepcopy(DEFAULT_GST),
        platform_fee=copy.deepcopy(DEFAULT_PLATFORM_FEE),
        other_taxes=[],
        status="active",
    )


def _insert_default(db):
    config = _default_config()
    try:
        with db.begin_nested():
            db.add(config)
    except IntegrityError:
        logger.info("Global tax configuration created concurrently, re-reading")
        config = _find_global(db)
        if config is None:
            raise
    return config


def get_global_tax_config(db):
    config = _find_global(db)
    if config is not None:
        return config
    config = _insert_default(db)
    db.commit()
    return config


def active_tax_config(db):
    """Config to apply to a purchase, or None when taxes are off."""
    config = _find_global(db)
    if config is None or config.status != "active":
        return None
    return config


def _section(value):
    return value.model_dump(exclude_unset=True) if hasattr(value, "model_dump") else dict(value or {})


def validate_tax_config(gst=None, platform_fee=None, other_taxes=None):
    errors = []

    if gst and gst.get("enabled"):
        rate = gst.get("rate") or 0
        if rate < 0 or rate > 100:
            errors.append("GST rate must be between 0 and 100")
        if gst.get("type") not in GST_TYPES:
            errors.append("GST type must be either 'inclusive' or 'exclusive'")

    if platform_fee and platform_fee.get("enabled"):
        if (platform_fee.get("rate") or 0) < 0:
            errors.append("Platform fee rate cannot be negative")
        if platform_fee.get("type") not in FEE_TYPES:
            errors.append("Platform fee type must be either 'percentage' or 'fixed'")

    for index, tax in enumerate(other_taxes or [], start=1):
        if not (tax.get("name") or "").strip():
            errors.append("Tax #{}: Name is required".format(index))
        if (tax.get("rate") or 0) < 0:
            errors.append("Tax #{}: Rate cannot be negative".format(index))
        if tax.get("type") not in FEE_TYPES:
            errors.append("Tax #{}: Type must be either 'percentage' or 'fixed'".format(index))

    return errors


def _state(config):
    return {
        "gst": copy.deepcopy(config.gst),
        "platformFee": copy.deepcopy(config.platform_fee),
        "otherTaxes": copy.deepcopy(config.other_taxes),
        "status": config.status,
    }


def update_global_tax_config(db, identity, payload):
    if not identity.is_admin:
        raise Forbidden("Unauthorized. Admin access required.")

    config = _find_global(db)
    created = config is None
    current_gst = DEFAULT_GST if created else config.gst
    current_fee = DEFAULT_PLATFORM_FEE if created else config.platform_fee

    gst = {**current_gst, **_section(payload.gst)} if payload.gst is not None else None
    platform_fee = (
        {**current_fee, **_section(payload.platform_fee)}
        if payload.platform_fee is not None
        else None
    )
    other_taxes = (
        [tax.model_dump() for tax in payload.other_taxes]
        if payload.other_taxes is not None
        else None
    )

    errors = validate_tax_config(gst, platform_fee, other_taxes)
    if errors:
        raise ValidationFailed("Invalid tax configuration", "; ".join(errors))

    if created:
        config = _insert_default(db)

    before = _state(config)
    # JSON columns are reassigned so the ORM sees the change.
    if gst is not None:
        config.gst = gst
    if platform_fee is not None:
        config.platform_fee = platform_fee
    if other_taxes is not None:
        config.other_taxes = other_taxes
    config.status = "active"
    config.user_id = identity.user_id
    after = _state(config)

    default_description = (
        "Initial tax configuration created" if created else "Tax configuration updated"
    )
    config.change_history.append(
        TaxChangeEntry(
            changed_by=identity.user_id,
            changed_by_email=identity.email,
            change_date=datetime.now(timezone.utc),
            changes={"before": before, "after": after},
            description=payload.change_description or default_description,
        )
    )
    db.flush()

    log_movement(
        db,
        "tax.created" if created else "tax.updated",
        payload.change_description or default_description,
        identity,
        metadata={"taxConfigId": config.id},
        changes={"before": before, "after": after},
    )
    db.commit()
    db.refresh(config)
    return config


def deactivate_global_tax_config(db, identity):
    if not identity.is_admin:
        raise Forbidden("Unauthorized. Admin access required.")
    config = _find_global(db)
    if config is None:
        raise NotFound("Tax configuration not found")

    config.status = "inactive"
    db.flush()
    log_movement(
        db,
        "tax.deleted",
        "Tax configuration deactivated",
        identity,
        metadata={"taxConfigId": config.id},
        changes={"before": {"status": "active"}, "after": {"status": "inactive"}},
    )
    db.commit()
    return config


def calculate_taxes(subtotal, config):
    """Tax breakdown for ``subtotal`` under ``config`` (a TaxConfig or None)."""
    subtotal = float(subtotal or 0)
    result = {
        "subtotal": subtotal,
        "gst": 0.0,
        "platformFee": 0.0,
        "otherTaxes": [],
        "totalTax": 0.0,
        "grandTotal": subtotal,
    }
    if config is None or config.status != "active" or subtotal <= 0:
        return result

    running_total = subtotal

    gst = config.gst or {}
    if gst.get("enabled"):
        rate = float(gst.get("rate") or 0)
        if gst.get("type") == "inclusive":
            # Already part of the price; reported, not added.
            result["gst"] = subtotal * rate / (100 + rate)
        else:
            result["gst"] = subtotal * rate / 100
            running_total += result["gst"]

    fee = config.platform_fee or {}
    if fee.get("enabled"):
        rate = float(fee.get("rate") or 0)
        result["platformFee"] = subtotal * rate / 100 if fee.get("type") == "percentage" else rate
        running_total += result["platformFee"]

    for tax in config.other_taxes or []:
        if not tax.get("enabled"):
            continue
        rate = float(tax.get("rate") or 0)
        amount = subtotal * rate / 100 if tax.get("type") == "percentage" else rate
        result["otherTaxes"].append(
            {"name": tax.get("name"), "rate": rate, "type": tax.get("type"), "amount": amount}
        )
        running_total += amount

    result["totalTax"] = (
        result["gst"]
        + result["platformFee"]
        + sum(tax["amount"] for tax in result["otherTaxes"])
    )
    result["grandTotal"] = running_total
    return result


__all__ = [
    "active_tax_config",
    "calculate_taxes",
    "deactivate_global_tax_config",
    "get_global_tax_config",
    "update_global_tax_config",
    "validate_tax_config",
]
