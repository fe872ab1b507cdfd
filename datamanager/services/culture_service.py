from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from datamanager.config import settings
from datamanager.services.authorization_service import AuthorizationContext
from datamanager.services.data_set_service import DataSetService


def get_system_cultures() -> list[str]:
    return sorted(settings.available_cultures)


def is_valid_culture(culture_name: str | None) -> bool:
    if not culture_name:
        return False
    return culture_name.lower() in {culture.lower() for culture in settings.available_cultures}


async def get_available_cultures(
    db: AsyncSession,
    context: AuthorizationContext,
    data_set_id: UUID | None = None,
) -> list[str]:
    """System cultures, narrowed to the data set's own list when it defines one."""
    cultures = get_system_cultures()
    if data_set_id is None:
        return cultures

    data_set = await DataSetService(db, context).get_data_set(data_set_id)
    if not data_set.available_cultures:
        return cultures
    allowed = {culture.lower() for culture in data_set.available_cultures}
    return [culture for culture in cultures if culture.lower() in allowed]
