"""Keep a pricing row for every model that appears in recorded interactions."""

from __future__ import annotations

from sqlmodel import col, select

from usage_limits.core.config import settings
from usage_limits.core.logging import get_logger
from usage_limits.core.time import utcnow
from usage_limits.models.interactions import Interaction
from usage_limits.models.token_prices import TokenPrice
from usage_limits.services.db_service import DBService

logger = get_logger(__name__)


class TokenPriceService(DBService):
    async def models_without_pricing(self) -> list[str]:
        used = select(Interaction.model).where(col(Interaction.model).is_not(None)).distinct()
        used_models = {str(model) for model in (await self.session.exec(used)).all()}
        priced = {str(model) for model in (await self.session.exec(select(TokenPrice.model))).all()}
        return sorted(used_models - priced)

    async def ensure_all_models_have_pricing(self) -> list[TokenPrice]:
        """Insert default prices for interaction models lacking a price row."""
        missing = await self.models_without_pricing()
        if not missing:
            return []
        now = utcnow()
        created = [
            TokenPrice(
                model=model,
                price_per_million_input=settings.default_token_price_input,
                price_per_million_output=settings.default_token_price_output,
                created_at=now,
                updated_at=now,
            )
            for model in missing
        ]
        self.session.add_all(created)
        await self.session.commit()
        logger.info("token_prices.defaults_created", extra={"models": ",".join(missing)})
        return created


__all__ = ["TokenPriceService"]
