from .core import Sounding, StationInfo
from .bufkit import parse_bufkit
from .parcel import Parcel, ParcelProfile, mixed_layer_parcel, lift_parcel, partition_cape
from .indexes import hot_dry_windy, convective_parcel_initiation_energetics

__all__ = [
    "Sounding",
    "StationInfo",
    "parse_bufkit",
    "Parcel",
    "ParcelProfile",
    "mixed_layer_parcel",
    "lift_parcel",
    "partition_cape",
    "hot_dry_windy",
    "convective_parcel_initiation_energetics",
]
