from sqlalchemy import Column, Integer, String, DateTime, JSON, func
from database import Base


# Audit trail of back-office mutations and failed order intents
class Log(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Subject claim of the caller's token; users are not stored here
    user_id = Column(String(64), nullable=True, index=True)

    action = Column(String(50), index=True)      # e.g. PRODUCT_CREATE, ORDER_PLACE
    resource = Column(String(50), index=True)    # router the action went through
    status = Column(String(20), index=True)      # SUCCESS / FAIL
    ip = Column(String(64), nullable=True)
    meta = Column(JSON, nullable=True)
