import logging

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from hall_reserve.models.hall import Hall
from hall_reserve.utils.audit import log_action
from hall_reserve.utils.exceptions import NotFoundException

logger = logging.getLogger(__name__)

DEFAULT_HALLS = [
    # 3rd Floor
    {"id": "1", "name": "Boardroom", "floor": "3rd Floor", "capacity": 15,
     "description": "Executive meeting space with premium seating.",
     "amenities": ["Conference Table", "AC", "Projector"], "imageUrl": "/hall pics/boardroom.jpg"},
    {"id": "2", "name": "Training Garage", "floor": "3rd Floor", "capacity": 50,
     "description": "Versatile space for workshops and technical training.",
     "amenities": ["Whiteboard", "Flexible Seating"], "imageUrl": "/hall pics/traning_grage.jpg"},
    # 2nd Floor
    {"id": "3", "name": "Huddle Space", "floor": "2nd Floor", "capacity": 35,
     "description": "Open area designed for collaborative brainstorming.",
     "amenities": ["Casual Seating", "Wifi"], "imageUrl": "/hall pics/Huddle_Space.jpg"},
    {"id": "4", "name": "Amphi Theater", "floor": "2nd Floor", "capacity": 24,
     "description": "Tiered seating for presentations and lectures.",
     "amenities": ["Stage", "Acoustic Treatment"], "imageUrl": "/hall pics/amphi_Thearte.jpg"},
    {"id": "5", "name": "Training Hall 3", "floor": "2nd Floor", "capacity": 22,
     "description": "Intimate classroom setting for small groups.",
     "amenities": ["Desks", "Projector"], "imageUrl": "/hall pics/Traning_Hall_3.jpg"},
    {"id": "6", "name": "Training Hall 2", "floor": "2nd Floor", "capacity": 180,
     "description": "Large capacity hall for major events and seminars.",
     "amenities": ["Sound System", "Dual Projectors", "Stage"], "imageUrl": "/hall pics/Training_Hall_2.jpg"},
    {"id": "7", "name": "Training Hall 1", "floor": "2nd Floor", "capacity": 35,
     "description": "Standard training room for lectures.",
     "amenities": ["Desks", "Whiteboard"], "imageUrl": "/hall pics/Training_Hall_1.jpg"},
    {"id": "8", "name": "Square", "floor": "2nd Floor", "capacity": 65,
     "description": "Central gathering space for medium-sized events.",
     "amenities": ["Flexible Layout"], "imageUrl": "/hall pics/Square.jpg"},
    {"id": "9", "name": "Teachers Coaching Room", "floor": "2nd Floor", "capacity": 12,
     "description": "Private room for faculty coaching and mentoring.",
     "amenities": ["Private", "Round Table"], "imageUrl": "/hall pics/Teachers_Coaching_Room.jpg"},
]


def _serialize(h: Hall) -> dict:
    return {
        "id":          h.id,
        "name":        h.name,
        "floor":       h.floor,
        "capacity":    h.capacity,
        "description": h.description,
        "amenities":   list(h.amenities or []),
        "imageUrl":    h.imageUrl,
    }


class HallService:

    def list_halls(self, db: Session, search: str | None, floor: str | None) -> list[dict]:
        q = select(Hall)
        if search:
            q = q.where(func.lower(Hall.name).contains(search.lower()))
        if floor and floor != "All":
            q = q.where(Hall.floor.contains(floor))
        return [_serialize(h) for h in db.scalars(q.order_by(Hall.id)).all()]

    def get_hall(self, db: Session, hall_id: str) -> Hall:
        h = db.get(Hall, hall_id)
        if not h:
            raise NotFoundException("Hall")
        return h

    def get_hall_detail(self, db: Session, hall_id: str) -> dict:
        return _serialize(self.get_hall(db, hall_id))

    def seed_defaults(self, db: Session) -> int:
        """Insert the default halls when the table is empty. Returns count inserted."""
        if db.scalar(select(func.count()).select_from(Hall)):
            return 0
        for data in DEFAULT_HALLS:
            db.add(Hall(**data))
        log_action(db, None, "SEED", "Hall", None, f"Seeded {len(DEFAULT_HALLS)} default halls")
        db.commit()
        logger.info(f"Seeded {len(DEFAULT_HALLS)} default halls")
        return len(DEFAULT_HALLS)


hall_service = HallService()
