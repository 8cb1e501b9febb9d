"""Cafe menu: public listing with NFT pricing, admin management."""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.database import get_db
from app.dependencies import get_optional_user, require_admin
from app.models.cafe import MenuItem, MenuCategory
from app.models.user import User
from app.schemas.cafe import MenuItemCreate, MenuItemUpdate, MenuItemResponse, MenuResponse
from app.services.audit_log import (
    create_log,
    diff_changes,
    ACTION_CREATE,
    ACTION_UPDATE,
    ACTION_DELETE,
    RESOURCE_MENU_ITEM,
)
from app.services.nft_discounts import calculate_cafe_price, DISCOUNT_RATES, CATEGORY_CAFE

router = APIRouter(prefix="/menu", tags=["menu"])


def _item_response(item: MenuItem, is_nft_holder: bool) -> MenuItemResponse:
    out = MenuItemResponse.model_validate(item)
    if is_nft_holder:
        out.nft_price = calculate_cafe_price(float(item.price), True).final
    return out


def _menu(items: list[MenuItem], user: User | None) -> MenuResponse:
    holder = bool(user and user.nft_holder)
    return MenuResponse(
        items=[_item_response(i, holder) for i in items],
        nft_discount_applied=holder,
        discount_rate=DISCOUNT_RATES[CATEGORY_CAFE] if holder else 0.0,
    )


def _get_or_404(db: Session, item_id: int) -> MenuItem:
    item = db.query(MenuItem).filter(MenuItem.id == item_id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return item


def _snapshot(item: MenuItem) -> dict:
    return {
        "title": item.title,
        "price": float(item.price),
        "category": item.category.value if item.category else None,
        "orderable": item.orderable,
        "featured": item.featured,
    }


@router.get("", response_model=MenuResponse)
def list_menu(
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
    category: MenuCategory | None = None,
    featured: bool | None = None,
    orderable: bool | None = None,
):
    q = db.query(MenuItem)
    if category:
        q = q.filter(MenuItem.category == category)
    if featured is not None:
        q = q.filter(MenuItem.featured == featured)
    if orderable is not None:
        q = q.filter(MenuItem.orderable == orderable)
    return _menu(q.order_by(MenuItem.category, MenuItem.sort_order, MenuItem.title).all(), current_user)


@router.get("/category/{category}", response_model=MenuResponse)
def list_category(
    category: MenuCategory,
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
):
    items = (
        db.query(MenuItem)
        .filter(MenuItem.category == category)
        .order_by(MenuItem.sort_order, MenuItem.title)
        .all()
    )
    return _menu(items, current_user)


@router.get("/{item_id}", response_model=MenuItemResponse)
def get_menu_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
):
    return _item_response(_get_or_404(db, item_id), bool(current_user and current_user.nft_holder))


@router.post("", response_model=MenuItemResponse, status_code=201)
def create_menu_item(
    data: MenuItemCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    if db.query(MenuItem.id).filter(MenuItem.slug == data.slug).first():
        raise HTTPException(status_code=409, detail="A menu item with this slug already exists")
    item = MenuItem(**data.model_dump())
    db.add(item)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="A menu item with this slug already exists")
    create_log(
        db, ACTION_CREATE, RESOURCE_MENU_ITEM, "Menu item created", f"Menu item '{item.title}' created",
        resource_id=item.id, actor=current_user, request=request, meta=_snapshot(item),
    )
    db.commit()
    db.refresh(item)
    return _item_response(item, False)


@router.patch("/{item_id}", response_model=MenuItemResponse)
def update_menu_item(
    item_id: int,
    data: MenuItemUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    item = _get_or_404(db, item_id)
    before = _snapshot(item)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(item, field, value)
    db.flush()
    changes = diff_changes(before, _snapshot(item))
    if changes:
        create_log(
            db, ACTION_UPDATE, RESOURCE_MENU_ITEM, "Menu item updated",
            f"Menu item '{item.title}' updated: {', '.join(sorted(changes))}",
            resource_id=item.id, actor=current_user, request=request, meta={"changes": changes},
        )
    db.commit()
    db.refresh(item)
    return _item_response(item, False)


@router.delete("/{item_id}", status_code=204)
def delete_menu_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Orders keep a snapshot of their lines, so items can be deleted outright."""
    item = _get_or_404(db, item_id)
    create_log(
        db, ACTION_DELETE, RESOURCE_MENU_ITEM, "Menu item deleted", f"Menu item '{item.title}' deleted",
        resource_id=item.id, actor=current_user, request=request, meta=_snapshot(item),
    )
    db.delete(item)
    db.commit()
    return None
