"""Category listing endpoints backing the storefront search filters."""

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from storefront_search.core.deps import DBSession
from storefront_search.models.category import Category, Subcategory
from storefront_search.schemas.category import CategoryResponse, SubcategoryResponse

router = APIRouter()


@router.get("/", response_model=list[CategoryResponse])
async def list_categories(db: DBSession) -> list[CategoryResponse]:
    """List all categories with their subcategories, ordered by name."""
    stmt = (
        select(Category)
        .options(selectinload(Category.subcategories))
        .order_by(Category.name)
    )
    result = await db.execute(stmt)
    categories = result.scalars().all()

    return [CategoryResponse.model_validate(c) for c in categories]


@router.get("/{category_id}/subcategories", response_model=list[SubcategoryResponse])
async def list_subcategories(category_id: str, db: DBSession) -> list[SubcategoryResponse]:
    """List the subcategories of one category."""
    category = await db.get(Category, category_id)
    if category is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found",
        )

    stmt = (
        select(Subcategory)
        .where(Subcategory.category_id == category_id)
        .order_by(Subcategory.name)
    )
    result = await db.execute(stmt)

    return [SubcategoryResponse.model_validate(s) for s in result.scalars().all()]
