from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from raya_domains.models.custom_domain import VERIFIED_STATUSES, CustomDomain


async def get(db: AsyncSession, domain_id: int, tenant_id: int) -> Optional[CustomDomain]:
    result = await db.execute(
        select(CustomDomain).where(
            CustomDomain.id == domain_id,
            CustomDomain.tenant_id == tenant_id,
        )
    )
    return result.scalar_one_or_none()


async def get_by_domain(db: AsyncSession, domain: str) -> Optional[CustomDomain]:
    result = await db.execute(select(CustomDomain).where(CustomDomain.domain == domain))
    return result.scalar_one_or_none()


async def get_routable_by_domain(db: AsyncSession, domain: str) -> Optional[CustomDomain]:
    """Row for `domain` only if it is verified and switched on."""
    result = await db.execute(
        select(CustomDomain).where(
            CustomDomain.domain == domain,
            CustomDomain.is_active.is_(True),
            CustomDomain.status.in_(VERIFIED_STATUSES),
        )
    )
    return result.scalar_one_or_none()


async def get_multi_by_tenant(db: AsyncSession, tenant_id: int) -> List[CustomDomain]:
    result = await db.execute(
        select(CustomDomain)
        .where(CustomDomain.tenant_id == tenant_id)
        .order_by(CustomDomain.is_primary.desc(), CustomDomain.created_at.desc(), CustomDomain.id.desc())
    )
    return list(result.scalars().all())


async def clear_primary(db: AsyncSession, tenant_id: int, *, exclude_id: Optional[int] = None) -> List[str]:
    """Drop the primary flag from the tenant's other domains (no commit).

    Returns the domain names whose flag was cleared.
    """
    conditions = [CustomDomain.tenant_id == tenant_id, CustomDomain.is_primary.is_(True)]
    if exclude_id is not None:
        conditions.append(CustomDomain.id != exclude_id)

    result = await db.execute(select(CustomDomain.domain).where(*conditions))
    cleared = list(result.scalars().all())
    if cleared:
        await db.execute(
            update(CustomDomain)
            .where(*conditions)
            .values(is_primary=False)
            .execution_options(synchronize_session="fetch")
        )
    return cleared


async def create(db: AsyncSession, *, db_obj: CustomDomain) -> CustomDomain:
    """Insert and commit. IntegrityError from the unique index propagates."""
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def save(db: AsyncSession, db_obj: CustomDomain) -> CustomDomain:
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def remove(db: AsyncSession, db_obj: CustomDomain) -> None:
    await db.delete(db_obj)
    await db.commit()
