"""
Prescription Model - Written by a doctor for a patient, checked daily for expiry.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..database import Base

class Prescription(Base):
    """
    Prescription Model

    Fields:
    - patient_id / doctor_id: Patient the prescription was written for, and by whom
    - name: Medication name
    - expires_at: When the prescription stops being valid
    - expired_notified_at: When the expiry was picked up by the daily job
    """
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    name = Column(String, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    expired_notified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    patient = relationship("User", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])

    def __repr__(self):
        return f"<Prescription(id={self.id}, name='{self.name}')>"
