import http
from collections import Counter
from typing import List, Dict, Any

from pydantic import ValidationError as PydanticValidationError

from context_manager.context import context_user_data
from logger import logger

# schema
from schema.base import GenericResponseModel
from modules.rate_card.rate_card_schema import (
    RateCardInsertModel,
    SellerRateOverrideInsertModel,
    BulkImportResultModel,
    BulkImportRowError,
)
from modules.rate_card.rate_card_repository import RateCardRepository
from modules.rate_card.override_resolver import card_sort_key

# utils
from utils.exception_handler import ShippingError, ValidationError
from utils.response_handler import success_response, error_response


class RateCardService:
    @staticmethod
    def bulk_import(
        records: List[Dict[str, Any]], repository: RateCardRepository
    ) -> GenericResponseModel:
        """
        Import rate card rows. Valid rows are upserted by identity, invalid
        rows are reported with their 1-based row number and do not stop the
        import.
        """
        try:
            if not isinstance(records, list):
                raise ValidationError("records must be a list of rate card rows")

            result = BulkImportResultModel()

            for index, record in enumerate(records, start=1):
                try:
                    card = RateCardInsertModel.model_validate(record)
                    _, created = repository.upsert_card(card)
                    if created:
                        result.created += 1
                    else:
                        result.updated += 1

                except PydanticValidationError as e:
                    result.failed.append(
                        BulkImportRowError(
                            row=index,
                            errors={
                                str(err["loc"][-1]) if err["loc"] else "row": err["msg"]
                                for err in e.errors()
                            },
                        )
                    )

                except ShippingError as e:
                    result.failed.append(
                        BulkImportRowError(row=index, errors={"row": e.message})
                    )

            logger.info(
                extra=context_user_data.get(),
                msg="Rate card import: {} created, {} updated, {} failed".format(
                    result.created, result.updated, len(result.failed)
                ),
            )

            status_code = (
                http.HTTPStatus.OK
                if not result.failed
                else http.HTTPStatus.MULTI_STATUS
            )
            return success_response(
                result, "Rate cards imported", status_code=status_code
            )

        except Exception as e:
            return error_response(e)

    @staticmethod
    def export_cards(
        repository: RateCardRepository, include_inactive: bool = False
    ) -> GenericResponseModel:
        try:
            cards = sorted(
                repository.list_cards(include_inactive=include_inactive),
                key=card_sort_key,
            )
            rows = [
                card.model_dump(
                    mode="json", exclude={"uuid", "created_at", "is_deleted"}
                )
                for card in cards
            ]
            return success_response(rows, "Rate cards exported")

        except Exception as e:
            return error_response(e)

    @staticmethod
    def active_couriers(repository: RateCardRepository) -> List[str]:
        return sorted({card.courier for card in repository.list_active_cards()})

    @staticmethod
    def statistics(repository: RateCardRepository) -> GenericResponseModel:
        try:
            cards = repository.list_cards(include_inactive=True)
            active = [card for card in cards if card.isActive]

            return success_response(
                {
                    "total": len(cards),
                    "active": len(active),
                    "inactive": len(cards) - len(active),
                    "byCourier": dict(sorted(Counter(c.courier for c in active).items())),
                    "byZone": dict(
                        sorted(Counter(c.zone.value for c in active).items())
                    ),
                    "byMode": dict(sorted(Counter(c.mode for c in active).items())),
                    "couriers": sorted({c.courier for c in active}),
                },
                "Rate card statistics fetched",
            )

        except Exception as e:
            return error_response(e)

    @staticmethod
    def save_override(
        override: Dict[str, Any], repository: RateCardRepository
    ) -> GenericResponseModel:
        try:
            stored = repository.upsert_override(
                SellerRateOverrideInsertModel.model_validate(override)
            )
            logger.info(
                extra=context_user_data.get(),
                msg="Override {} saved for seller {} on card {}".format(
                    stored.id, stored.sellerId, stored.baseRateCardId
                ),
            )
            return success_response(stored, "Seller rate override saved")

        except PydanticValidationError as e:
            return error_response(
                ValidationError(
                    "Invalid seller rate override",
                    details={
                        str(err["loc"][-1]) if err["loc"] else "override": err["msg"]
                        for err in e.errors()
                    },
                )
            )
        except Exception as e:
            return error_response(e)

    @staticmethod
    def remove_card(
        card_id: int, repository: RateCardRepository, privileged: bool = False
    ) -> GenericResponseModel:
        """Soft delete deactivates; the row is only dropped for privileged actors."""
        try:
            if not privileged:
                card = repository.deactivate_card(card_id)
                return success_response(card, "Rate card deactivated")

            repository.delete_card(card_id, privileged=True)
            logger.warning(
                extra=context_user_data.get(),
                msg=f"Rate card {card_id} hard deleted",
            )
            return success_response({"id": card_id}, "Rate card deleted")

        except Exception as e:
            return error_response(e)
