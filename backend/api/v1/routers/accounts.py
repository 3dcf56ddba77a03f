"""
Accounts Router — CRUD for customer and supplier accounts.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from db.models import Account, KanbanChain

router = APIRouter(prefix="/api/v1/accounts", tags=["accounts"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    vat_number: str | None = Field(None, max_length=50)
    address: str | None = None


class AccountUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    vat_number: str | None = None
    address: str | None = None


class AccountResponse(BaseModel):
    id: int
    name: str
    vat_number: str | None
    address: str | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[AccountResponse])
async def list_accounts(db: AsyncSession = Depends(get_db)):
    """List all accounts."""
    result = await db.execute(select(Account).order_by(Account.id))
    return result.scalars().all()


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(account_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single account by ID."""
    account = await db.get(Account, account_id)
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")
    return account


@router.post("/", response_model=AccountResponse, status_code=201)
async def create_account(account: AccountCreate, db: AsyncSession = Depends(get_db)):
    """Create a new account."""
    db_account = Account(**account.model_dump())
    db.add(db_account)
    await db.commit()
    await db.refresh(db_account)
    return db_account


@router.patch("/{account_id}", response_model=AccountResponse)
async def update_account(account_id: int, update: AccountUpdate, db: AsyncSession = Depends(get_db)):
    """Update an account."""
    account = await db.get(Account, account_id)
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")

    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(account, field, value)

    await db.commit()
    await db.refresh(account)
    return account


@router.delete("/{account_id}", status_code=204)
async def delete_account(account_id: int, db: AsyncSession = Depends(get_db)):
    """Delete an account that no kanban chain references."""
    account = await db.get(Account, account_id)
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")

    references = await db.scalar(
        select(func.count(KanbanChain.id)).where(
            or_(
                KanbanChain.customer_account_id == account_id,
                KanbanChain.supplier_account_id == account_id,
            )
        )
    )
    if references:
        raise HTTPException(status_code=409, detail="Account is referenced by kanban chains")

    await db.delete(account)
    await db.commit()
