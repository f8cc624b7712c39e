from sqlalchemy import Column, Float, ForeignKey, Integer, Text, text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Businesses(Base):
    __tablename__ = 'businesses'

    name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    slug = Column(Text, unique=True)
    timezone = Column(Text)  # IANA name, NULL = legacy fixed offset
    automatic_reminders = Column(Integer, nullable=False, server_default=text('0'))
    reminder_config = Column(Text)  # JSON
    evolution_api_config = Column(Text)  # JSON
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    services = relationship('Services', back_populates='business')
    professionals = relationship('Professionals', back_populates='business')
    appointments = relationship('Appointments', back_populates='business')


class Services(Base):
    __tablename__ = 'services'

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Float, nullable=False)
    id = Column(Integer, primary_key=True)
    description = Column(Text)

    business = relationship('Businesses', back_populates='services')
    appointments = relationship('Appointments', back_populates='service')


class Professionals(Base):
    __tablename__ = 'professionals'

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    role = Column(Text)
    phone = Column(Text)
    schedule = Column(Text)  # JSON: [{"day", "active", "intervals": [{"start", "end"}]}]

    business = relationship('Businesses', back_populates='professionals')
    appointments = relationship('Appointments', back_populates='professional')
    blocks = relationship('ProfessionalBlocks', back_populates='professional')


class Appointments(Base):
    __tablename__ = 'appointments'

    business_id = Column(ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    professional_id = Column(ForeignKey('professionals.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id'))
    client_name = Column(Text, nullable=False)
    date = Column(Text, nullable=False)  # YYYY-MM-DD
    time = Column(Text, nullable=False)  # HH:MM
    status = Column(Text, nullable=False, server_default=text("'Pendente'"))
    reminder_sent = Column(Integer, nullable=False, server_default=text('0'))
    id = Column(Integer, primary_key=True)
    client_phone = Column(Text)
    notes = Column(Text)
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    business = relationship('Businesses', back_populates='appointments')
    professional = relationship('Professionals', back_populates='appointments')
    service = relationship('Services', back_populates='appointments')


class ProfessionalBlocks(Base):
    __tablename__ = 'professional_blocks'

    professional_id = Column(ForeignKey('professionals.id', ondelete='CASCADE'), nullable=False)
    start_date = Column(Text, nullable=False)
    end_date = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    start_time = Column(Text)  # NULL = full day
    end_time = Column(Text)
    reason = Column(Text)

    professional = relationship('Professionals', back_populates='blocks')
