from sqlalchemy import Column, Integer, BigInteger, String, Float, Boolean, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class RepresentativeTelemetry(Base):
    """
    One row per node per import run.
    Plain nodes (not matched to a quorum peer) have no account or weight.
    """
    __tablename__ = "representatives_telemetry"

    id = Column(Integer, primary_key=True, index=True)
    account = Column(String, nullable=True)
    # raw weights exceed 64 bits
    weight = Column(String, nullable=True)

    block_count = Column(BigInteger, nullable=False)
    block_behind = Column(BigInteger, nullable=False)
    cemented_count = Column(BigInteger, nullable=False)
    cemented_behind = Column(BigInteger, nullable=False)
    unchecked_count = Column(BigInteger, nullable=True)
    bandwidth_cap = Column(BigInteger, nullable=True)
    peer_count = Column(Integer, nullable=True)
    protocol_version = Column(Integer, nullable=True)
    uptime = Column(BigInteger, nullable=True)
    major_version = Column(Integer, nullable=True)
    minor_version = Column(Integer, nullable=True)
    patch_version = Column(Integer, nullable=True)
    pre_release_version = Column(Integer, nullable=True)
    maker = Column(Integer, nullable=True)
    node_id = Column(String, nullable=False)
    address = Column(String, nullable=False)
    port = Column(Integer, nullable=False)
    telemetry_timestamp = Column(BigInteger, nullable=True)

    # run timestamp, epoch seconds
    timestamp = Column(BigInteger, nullable=False, index=True)

    __table_args__ = (
        Index('ix_representatives_telemetry_account_timestamp', 'account', 'timestamp'),
    )

class RepresentativeNetwork(Base):
    __tablename__ = "representatives_network"

    id = Column(Integer, primary_key=True, index=True)
    account = Column(String, nullable=False)
    address = Column(String, nullable=False)

    continent = Column(String, nullable=True)
    country = Column(String, nullable=True)
    country_code = Column(String, nullable=True)
    region = Column(String, nullable=True)
    region_name = Column(String, nullable=True)
    city = Column(String, nullable=True)
    zip = Column(String, nullable=True)
    lat = Column(Float, nullable=True)
    lon = Column(Float, nullable=True)
    timezone = Column(String, nullable=True)
    isp = Column(String, nullable=True)
    org = Column(String, nullable=True)
    # "as" is a python keyword
    asn = Column("as", String, nullable=True)
    asname = Column(String, nullable=True)
    hosted = Column(Boolean, nullable=True)

    timestamp = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index('ix_representatives_network_account_address_timestamp', 'account', 'address', 'timestamp'),
    )
