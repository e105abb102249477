from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from raya_domains.models.tenant import Tenant


async def get(db: AsyncSession, tenant_id: int) -> Optional[Tenant]:
    return await db.get(Tenant, tenant_id)
