"""Static catalog of research-backed VO2max training protocols."""
from typing import Dict, List, Optional

from models.protocol import ProtocolData

PROTOCOLS: Dict[str, ProtocolData] = {
    protocol.id: protocol
    for protocol in (
        ProtocolData(
            id="tabata",
            name="Tabata Protocol",
            vo2max_gain="~13% improvement",
            time_to_results="3–6 weeks",
            fitness_level="Athlete",
            protocol_duration="7–8 sets of 20s work + 10s rest, ~4 mins/session",
            sport_modality="Cycling (ergometer)",
            research_population=(
                "Young male physical education students (active athletes in university teams)"
            ),
            researchers="Izumi Tabata et al.",
            institution="National Institute of Fitness and Sports",
            location="Japan",
            year="1996",
            doi="https://doi.org/10.1097/00005768-199610000-00018",
            category="interval",
            difficulty="advanced",
            time_commitment="low",
            equipment_required=("bike", "timer"),
        ),
        ProtocolData(
            id="norwegian4x4",
            name="Norwegian 4x4 Interval Training",
            vo2max_gain="~7.2%",
            time_to_results="8 weeks",
            fitness_level="Intermediate to Advanced",
            protocol_duration="4 × 4-min intervals at 85–95% HRmax, 3-min recovery",
            sport_modality="Running, Cycling, Cross-Country Skiing",
            research_population="Well-trained endurance athletes",
            researchers="Jan Helgerud et al.",
            institution="Norwegian University of Science and Technology",
            location="Norway",
            year="2007",
            doi="https://doi.org/10.1249/mss.0b013e3180304570",
            category="interval",
            difficulty="intermediate",
            time_commitment="medium",
            equipment_required=("cardio_equipment", "heart_rate_monitor"),
        ),
        ProtocolData(
            id="10-20-30",
            name="10-20-30 Protocol",
            vo2max_gain="~4% in recreational runners",
            time_to_results="7 weeks",
            fitness_level="Recreational to Intermediate",
            protocol_duration="Alternating 30s easy, 20s moderate, 10s hard",
            sport_modality="Running",
            research_population="Recreational runners",
            researchers="Thomas P. Gunnarsson et al.",
            institution="University of Copenhagen",
            location="Denmark",
            year="2012",
            doi="https://doi.org/10.1111/j.1600-0838.2012.01478.x",
            category="interval",
            difficulty="beginner",
            time_commitment="medium",
            equipment_required=("running_space", "timer"),
        ),
        ProtocolData(
            id="billat30-30",
            name="Billat's 30:30",
            vo2max_gain="Maintains VO2max efficiency",
            time_to_results="4–6 weeks",
            fitness_level="Intermediate to Advanced",
            protocol_duration="Alternating 30s at vVO2max, 30s at 50% vVO2max",
            sport_modality="Running",
            research_population="Trained distance runners",
            researchers="Véronique Billat et al.",
            institution="University of Lille",
            location="France",
            year="2000",
            doi="https://doi.org/10.1097/00005768-200008000-00014",
            category="interval",
            difficulty="intermediate",
            time_commitment="medium",
            equipment_required=("running_space", "timer", "heart_rate_monitor"),
        ),
        ProtocolData(
            id="lactateThreshold",
            name="Lactate Threshold Training",
            vo2max_gain="Modest, typically 3–5%",
            time_to_results="~3–6 weeks",
            fitness_level="Amateur to Athlete",
            protocol_duration="~30 mins per session",
            sport_modality="Running, Cycling, Swimming",
            research_population="Endurance athletes (various levels)",
            researchers="Jack Daniels, David Costill",
            institution="Ball State University",
            location="USA",
            year="1979",
            doi="https://doi.org/10.2165/00007256-200131020-00001",
            category="threshold",
            difficulty="intermediate",
            time_commitment="medium",
            equipment_required=("cardio_equipment",),
        ),
        ProtocolData(
            id="zone2",
            name="Zone 2 Training",
            vo2max_gain="Gradual; 3–7% depending on baseline",
            time_to_results="8–12 weeks",
            fitness_level="All levels",
            protocol_duration="45–90 mins/session",
            sport_modality="Running, Cycling, Endurance Modalities",
            research_population="Endurance athletes",
            researchers="Stephen Seiler",
            institution="University of Agder",
            location="Norway",
            year="2010",
            doi="https://doi.org/10.1123/ijspp.5.3.276",
            category="endurance",
            difficulty="beginner",
            time_commitment="high",
            equipment_required=("cardio_equipment", "heart_rate_monitor"),
        ),
    )
}


def get_all_protocols() -> List[ProtocolData]:
    """Return every protocol in catalog order."""
    return list(PROTOCOLS.values())


def get_protocol_by_id(protocol_id: str) -> Optional[ProtocolData]:
    return PROTOCOLS.get(protocol_id)


def protocol_to_payload(protocol: ProtocolData) -> Dict[str, object]:
    """Public JSON shape of a catalog entry (camelCase, as the client expects)."""
    return {
        "id": protocol.id,
        "name": protocol.name,
        "vo2maxGain": protocol.vo2max_gain,
        "timeToResults": protocol.time_to_results,
        "fitnessLevel": protocol.fitness_level,
        "protocolDuration": protocol.protocol_duration,
        "sportModality": protocol.sport_modality,
        "researchPopulation": protocol.research_population,
        "researchers": protocol.researchers,
        "institution": protocol.institution,
        "location": protocol.location,
        "year": protocol.year,
        "doi": protocol.doi,
        "category": protocol.category,
        "difficulty": protocol.difficulty,
        "timeCommitment": protocol.time_commitment,
        "equipmentRequired": list(protocol.equipment_required),
    }
