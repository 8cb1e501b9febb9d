"""Seed reference data: membership plans, workspaces, cafe menu, blog categories."""
from sqlalchemy.orm import Session
from app.models.membership import MembershipPlan, BillingPeriod
from app.models.workspace import Workspace, WorkspaceType, ResourceCategory
from app.models.cafe import MenuItem, MenuCategory
from app.models.content import BlogCategory


def seed_membership_plans(db: Session) -> None:
    if db.query(MembershipPlan).count() > 0:
        return
    plans = [
        MembershipPlan(
            name="Hourly",
            slug="hourly",
            description="Pay as you go hot desk access.",
            price=2.50,
            nft_holder_price=1.25,
            billing_period=BillingPeriod.hourly,
            features=["Hot desk access", "High-speed WiFi", "Free coffee refills"],
            access_hours="7:00 AM - 10:00 PM",
            includes_hot_desk=False,
            sort_order=1,
        ),
        MembershipPlan(
            name="Day Pass",
            slug="day-pass",
            description="Full day of hot desk access with meeting room hours.",
            price=25.00,
            nft_holder_price=12.50,
            billing_period=BillingPeriod.daily,
            features=["Full day hot desk", "2 hours meeting room", "10% cafe discount"],
            meeting_room_credits_hours=2,
            cafe_discount_percentage=10,
            access_hours="7:00 AM - 10:00 PM",
            includes_hot_desk=True,
            sort_order=2,
        ),
        MembershipPlan(
            name="Cafe Membership",
            slug="cafe-membership",
            description="Weekday daytime access for regulars.",
            price=150.00,
            nft_holder_price=75.00,
            billing_period=BillingPeriod.monthly,
            features=["Weekday hot desk", "2 meeting room hours per month", "50 printing credits", "10% cafe discount"],
            meeting_room_credits_hours=2,
            printing_credits=50,
            cafe_discount_percentage=10,
            access_hours="9:00 AM - 5:00 PM Mon-Fri",
            includes_hot_desk=True,
            sort_order=3,
        ),
        MembershipPlan(
            name="Resident Desk",
            slug="resident",
            description="Round the clock access with guest passes.",
            price=425.00,
            nft_holder_price=225.00,
            billing_period=BillingPeriod.monthly,
            features=["24/7 access", "8 meeting room hours per month", "100 printing credits", "20% cafe discount", "2 guest passes"],
            meeting_room_credits_hours=8,
            printing_credits=100,
            cafe_discount_percentage=20,
            guest_passes=2,
            access_hours="24/7",
            includes_hot_desk=True,
            sort_order=4,
        ),
    ]
    for p in plans:
        db.add(p)
    db.commit()


def seed_workspaces(db: Session) -> None:
    if db.query(Workspace).count() > 0:
        return
    desk_amenities = ["WiFi", "Power outlets", "Ergonomic chair"]
    room_amenities = ["WiFi", "Whiteboard", "Display screen", "Video conferencing"]
    pod_amenities = ["WiFi", "Soundproofing", "Power outlet"]

    def desk(name, floor, description):
        return Workspace(
            name=name, type=WorkspaceType.hot_desk, resource_category=ResourceCategory.desk,
            description=description, capacity=1, base_price_hourly=2.50, requires_credits=False,
            min_duration=1, max_duration=12, amenities=desk_amenities,
            images=["/images/workspaces/hot-desk.jpg"], floor_location=floor,
        )

    def room(name, ws_type, capacity, price, floor, description, amenities=room_amenities, max_duration=8):
        return Workspace(
            name=name, type=ws_type, resource_category=ResourceCategory.meeting_room,
            description=description, capacity=capacity, base_price_hourly=price, requires_credits=True,
            min_duration=0.5, max_duration=max_duration, amenities=amenities,
            images=[f"/images/workspaces/{ws_type.value}.jpg"], floor_location=floor,
        )

    workspaces = [
        desk("Hot Desk - Main Floor", "Main Floor", "Open seating near the cafe."),
        desk("Hot Desk - Quiet Zone", "Second Floor", "Silent area for focused work."),
        room("Focus Room A", WorkspaceType.focus_room, 4, 25.00, "Main Floor", "Small room for focused team sessions."),
        room("Focus Room B", WorkspaceType.focus_room, 4, 25.00, "Second Floor", "Small room for focused team sessions."),
        room("Collaborate Room", WorkspaceType.collaborate_room, 6, 40.00, "Main Floor", "Mid-size room for workshops."),
        room("Boardroom", WorkspaceType.boardroom, 8, 60.00, "Second Floor", "Formal meeting room for client presentations."),
        room("Communications Pod 1", WorkspaceType.communications_pod, 1, 5.00, "Main Floor",
             "Private booth for calls.", amenities=pod_amenities, max_duration=4),
        room("Communications Pod 2", WorkspaceType.communications_pod, 1, 5.00, "Second Floor",
             "Private booth for calls.", amenities=pod_amenities, max_duration=4),
    ]
    for ws in workspaces:
        db.add(ws)
    db.commit()


def seed_menu_items(db: Session) -> None:
    if db.query(MenuItem).count() > 0:
        return
    items = [
        ("House Blend", "house-blend", 3.50, MenuCategory.coffee, ["vegan"], True),
        ("Espresso", "espresso", 3.00, MenuCategory.coffee, ["vegan"], False),
        ("Cappuccino", "cappuccino", 4.50, MenuCategory.coffee, ["vegetarian"], True),
        ("Latte", "latte", 4.75, MenuCategory.coffee, ["vegetarian"], False),
        ("Cold Brew", "cold-brew", 4.25, MenuCategory.coffee, ["vegan"], False),
        ("English Breakfast Tea", "english-breakfast-tea", 3.00, MenuCategory.tea, ["vegan"], False),
        ("Almond Croissant", "almond-croissant", 3.75, MenuCategory.pastries, ["vegetarian"], True),
        ("Avocado Toast", "avocado-toast", 12.00, MenuCategory.meals, ["vegetarian", "vegan-option"], False),
    ]
    for sort_order, (title, slug, price, category, tags, featured) in enumerate(items, start=1):
        db.add(MenuItem(
            title=title, slug=slug, price=price, category=category,
            dietary_tags=tags, featured=featured, sort_order=sort_order,
        ))
    db.commit()


def seed_blog_categories(db: Session) -> None:
    if db.query(BlogCategory).count() > 0:
        return
    categories = [
        ("Community", "community", "Member stories and neighbourhood news."),
        ("Events", "events", "Recaps and announcements for workshops and meetups."),
        ("Productivity", "productivity", "Tips for getting deep work done."),
        ("Web3", "web3", "NFT membership perks and on-chain community updates."),
    ]
    for name, slug, description in categories:
        db.add(BlogCategory(name=name, slug=slug, description=description))
    db.commit()


def seed_all(db: Session) -> None:
    seed_membership_plans(db)
    seed_workspaces(db)
    seed_menu_items(db)
    seed_blog_categories(db)
