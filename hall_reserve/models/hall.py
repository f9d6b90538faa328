from sqlalchemy import Column, Integer, String, Text, JSON
from hall_reserve.database import Base


class Hall(Base):
    __tablename__ = "halls"

    id          = Column(String(64), primary_key=True)
    name        = Column(String(200), nullable=False)
    floor       = Column(String(50), nullable=False)
    capacity    = Column(Integer, nullable=False)
    description = Column(Text, nullable=False, default="")
    amenities   = Column(JSON, nullable=False, default=list)
    imageUrl    = Column(String(500), nullable=True)

    def __repr__(self):
        return f"<Hall id={self.id} name={self.name} capacity={self.capacity}>"
