"""
Request and response models for the AGCOD API.

Field names follow Python conventions; to_dict()/from_dict() translate to
and from the camelCase JSON the API speaks.
"""
import json
import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dateutil import parser as date_parser

from utils.exceptions import ValidationError


def _to_json(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, separators=(',', ':')).encode('utf-8')


def _require(value: Any, name: str) -> None:
    if not value:
        raise ValidationError(f'{name} is required', field=name, value=value)


def _parse_datetime(value: Optional[str]) -> Optional[dt.datetime]:
    if not value:
        return None
    try:
        return date_parser.isoparse(value)
    except ValueError:
        # Expiration dates are not always ISO 8601
        return date_parser.parse(value)


@dataclass
class MoneyValue:
    """An amount in a given currency."""

    amount: Optional[float] = None
    currency_code: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {'amount': self.amount, 'currencyCode': self.currency_code}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MoneyValue":
        data = data or {}
        return cls(
            amount=data.get('amount'),
            currency_code=data.get('currencyCode') or '',
        )


@dataclass
class CreateGiftCardRequest:
    """Body of a CreateGiftCard call."""

    creation_request_id: str
    partner_id: str
    value: MoneyValue

    def validate(self) -> None:
        """
        Raises:
            ValidationError: If a required field is empty
        """
        _require(self.creation_request_id, 'creation_request_id')
        _require(self.partner_id, 'partner_id')
        _require(self.value.currency_code, 'value.currency_code')
        if self.value.amount is None:
            raise ValidationError('value.amount is required', field='value.amount')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'creationRequestId': self.creation_request_id,
            'partnerId': self.partner_id,
            'value': self.value.to_dict(),
        }

    def to_json(self) -> bytes:
        return _to_json(self.to_dict())


@dataclass
class CancelGiftCardRequest:
    """Body of a CancelGiftCard call."""

    creation_request_id: str
    partner_id: str
    gc_id: str

    def validate(self) -> None:
        """
        Raises:
            ValidationError: If a required field is empty
        """
        _require(self.creation_request_id, 'creation_request_id')
        _require(self.partner_id, 'partner_id')
        _require(self.gc_id, 'gc_id')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'creationRequestId': self.creation_request_id,
            'partnerId': self.partner_id,
            'gcId': self.gc_id,
        }

    def to_json(self) -> bytes:
        return _to_json(self.to_dict())


@dataclass
class GetAvailableFundsRequest:
    """Body of a GetAvailableFunds call."""

    partner_id: str

    def validate(self) -> None:
        _require(self.partner_id, 'partner_id')

    def to_dict(self) -> Dict[str, Any]:
        return {'partnerId': self.partner_id}

    def to_json(self) -> bytes:
        return _to_json(self.to_dict())


@dataclass
class CardInfo:
    card_number: str = ''
    card_status: str = ''
    expiration_date: str = ''
    value: MoneyValue = field(default_factory=MoneyValue)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CardInfo":
        data = data or {}
        return cls(
            card_number=data.get('cardNumber') or '',
            card_status=data.get('cardStatus') or '',
            expiration_date=data.get('expirationDate') or '',
            value=MoneyValue.from_dict(data.get('value')),
        )


@dataclass
class CreateGiftCardResponse:
    """Result of a CreateGiftCard call."""

    gc_claim_code: str = ''
    card_info: CardInfo = field(default_factory=CardInfo)
    gc_id: str = ''
    creation_request_id: str = ''
    gc_expiration_date: str = ''
    status: str = ''

    @property
    def gc_expiration_datetime(self) -> Optional[dt.datetime]:
        """Parsed gc_expiration_date, or None when the card does not expire."""
        return _parse_datetime(self.gc_expiration_date)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CreateGiftCardResponse":
        data = data or {}
        return cls(
            gc_claim_code=data.get('gcClaimCode') or '',
            card_info=CardInfo.from_dict(data.get('cardInfo')),
            gc_id=data.get('gcId') or '',
            creation_request_id=data.get('creationRequestId') or '',
            gc_expiration_date=data.get('gcExpirationDate') or '',
            status=data.get('status') or '',
        )


@dataclass
class CancelGiftCardResponse:
    """Result of a CancelGiftCard call."""

    creation_request_id: str = ''
    gc_id: str = ''
    status: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CancelGiftCardResponse":
        data = data or {}
        return cls(
            creation_request_id=data.get('creationRequestId') or '',
            gc_id=data.get('gcId') or '',
            status=data.get('status') or '',
        )


@dataclass
class GetAvailableFundsResponse:
    """Result of a GetAvailableFunds call."""

    available_funds: MoneyValue = field(default_factory=MoneyValue)
    status: str = ''
    timestamp: str = ''

    @property
    def timestamp_datetime(self) -> Optional[dt.datetime]:
        """Parsed timestamp, e.g. '20160708T073147Z'."""
        return _parse_datetime(self.timestamp)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GetAvailableFundsResponse":
        data = data or {}
        return cls(
            available_funds=MoneyValue.from_dict(data.get('availableFunds')),
            status=data.get('status') or '',
            timestamp=data.get('timestamp') or '',
        )
