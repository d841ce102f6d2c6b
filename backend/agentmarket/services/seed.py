"""
Demo data seeding.

WHAT: Insert demo listings, sell agents and buy agents
WHY: A fresh database needs something to negotiate over
HOW: Idempotent by title/name; one listing has no seller floor to exercise human escalation
"""

from typing import Any, Dict, List

from sqlalchemy.orm import Session

from ..core.models import BuyAgent, EventType, Listing, ListingStatus, SellAgent, Urgency
from ..utils.logger import get_logger
from .event_log import record_event

logger = get_logger(__name__)

DEMO_LISTINGS: List[Dict[str, Any]] = [
    {
        "title": "Vintage Leather Jacket",
        "description": "Classic 1980s leather jacket in excellent condition. Genuine leather with minimal wear.",
        "category": "clothing",
        "structured": {"size": "M", "gender": "unisex", "condition": "Good"},
        "ask_price": 450,
        "condition_notes": [
            {"issue": "Minor shoulder wear", "confidence": "medium"},
            {"issue": "Original zippers intact", "confidence": "high"},
        ],
        "haggling_ammo": ["Small scuff on left sleeve", "Original care tags present"],
        "seller": {"name": "Jacket Seller Agent", "min_price": None, "urgency": Urgency.MEDIUM},
    },
    {
        "title": "MacBook Pro 16\" M2 Pro",
        "description": "Late 2023 model with M2 Pro chip. 16GB RAM, 512GB SSD.",
        "category": "electronics",
        "structured": {"brand": "Apple", "year": 2023, "storage": "512GB", "condition": "Excellent"},
        "ask_price": 1800,
        "condition_notes": [
            {"issue": "Battery health 95%", "confidence": "high"},
            {"issue": "No visible scratches", "confidence": "high"},
        ],
        "haggling_ammo": ["One small dent on corner", "Original box and charger included"],
        "seller": {
            "name": "Laptop Seller Agent",
            "min_price": 1500,
            "urgency": Urgency.HIGH,
            "internal_notes": "Moving abroad next month; prefer a quick sale.",
        },
    },
    {
        "title": "Mid-Century Modern Desk",
        "description": "Walnut desk from the 1960s. Solid construction with two drawers.",
        "category": "furniture",
        "structured": {"material": "Walnut", "dimensions": "60x30x30", "condition": "Good"},
        "ask_price": 650,
        "condition_notes": [
            {"issue": "Some wear on top surface", "confidence": "medium"},
            {"issue": "Drawers slide smoothly", "confidence": "high"},
        ],
        "haggling_ammo": ["Water ring marks on surface", "Original hardware"],
        "seller": {"name": "Desk Seller Agent", "min_price": 520, "urgency": Urgency.LOW},
    },
]

DEMO_BUY_AGENTS: List[Dict[str, Any]] = [
    {
        "name": "Vintage Jacket Finder",
        "category": "clothing",
        "filters": {"size": "M"},
        "prompt": "Looking for vintage leather jackets in good condition. Prefer 80s or 90s styles.",
        "max_price": 500,
        "urgency": Urgency.MEDIUM,
    },
    {
        "name": "Laptop Deal Hunter",
        "category": "electronics",
        "filters": {"brand": "Apple"},
        "prompt": "Need a MacBook Pro for development work. M-series chip preferred.",
        "max_price": 2000,
        "urgency": Urgency.HIGH,
        "internal_notes": "Budget is firm; employer reimburses up to $1,700.",
    },
    {
        "name": "Office Furniture Scout",
        "category": "furniture",
        "filters": {"style": "Modern"},
        "prompt": "Looking for ergonomic office furniture.",
        "max_price": 1500,
        "urgency": Urgency.LOW,
    },
]


def _listing_dict(listing: Listing) -> Dict[str, Any]:
    return {"id": listing.id, "title": listing.title, "ask_price": listing.ask_price, "category": listing.category}


def seed_demo_data(db: Session) -> Dict[str, List[Dict[str, Any]]]:
    """
    Insert demo rows that do not exist yet.

    Returns:
        Dict of seeded (or already present) listings, sell agents and buy agents
    """
    listings, sell_agents, buy_agents = [], [], []

    for data in DEMO_LISTINGS:
        listing = db.query(Listing).filter(Listing.title == data["title"]).first()
        if listing is None:
            listing = Listing(
                title=data["title"],
                description=data["description"],
                category=data["category"],
                structured=data["structured"],
                ask_price=data["ask_price"],
                condition_notes=data["condition_notes"],
                haggling_ammo=data["haggling_ammo"],
                status=ListingStatus.ACTIVE,
            )
            db.add(listing)
            db.flush()
            record_event(
                db,
                EventType.LISTING_CREATED,
                {"title": listing.title, "price": listing.ask_price},
                listing_id=listing.id,
            )

        seller_data = data["seller"]
        sell_agent = db.query(SellAgent).filter(SellAgent.listing_id == listing.id).first()
        if sell_agent is None:
            sell_agent = SellAgent(
                listing_id=listing.id,
                name=seller_data["name"],
                min_price=seller_data["min_price"],
                urgency=seller_data["urgency"],
                internal_notes=seller_data.get("internal_notes"),
            )
            db.add(sell_agent)
            db.flush()

        listings.append(_listing_dict(listing))
        sell_agents.append({"id": sell_agent.id, "listing_id": listing.id, "min_price": sell_agent.min_price})

    for data in DEMO_BUY_AGENTS:
        buy_agent = db.query(BuyAgent).filter(BuyAgent.name == data["name"]).first()
        if buy_agent is None:
            buy_agent = BuyAgent(**data)
            db.add(buy_agent)
            db.flush()
        buy_agents.append({"id": buy_agent.id, "name": buy_agent.name, "max_price": buy_agent.max_price})

    logger.info(f"Seeded demo data ({len(listings)} listings, {len(buy_agents)} buy agents)")
    return {"listings": listings, "sell_agents": sell_agents, "buy_agents": buy_agents}
