# memory_landscape/sample_journey.py

"""
A small bundled journey used by the baking CLI when no --journey file is given,
and by the test-suite. It is authored in the same camelCase JSON layout that
load_journey() reads, so it doubles as a format example.
"""

from .schema import JourneyData, journey_from_dict

SAMPLE_JOURNEY = {
    "locations": [
        {
            "id": "chicago",
            "name": "Chicago",
            "nameCn": "芝加哥",
            "type": "origin",
            "period": {"start": "2024-01-01"},
            "intensity": 0.85,
            "valence": 0.7,
            "languageBalance": 0.2,
            "significance": 0.98,
            "duration": 0.1,
            "color": "#4169e1",
            "notes": "Birthplace.",
        },
        {
            "id": "nanjing",
            "name": "Nanjing",
            "nameCn": "南京",
            "type": "visit",
            "period": {"start": "2019-01-01", "end": "2019-02-01"},
            "intensity": 0.6,
            "valence": 0.4,
            "languageBalance": -0.9,
            "significance": 0.6,
            "duration": 0.1,
            "isVisit": True,
            "color": "#d4494e",
            "notes": "Family visit; cultural roots.",
            "memories": [
                {"type": "photo", "content": "Grandparents at the city wall", "date": "2019-01-12",
                 "sentiment": 0.8, "language": "zh"},
                {"type": "letter", "content": "New year letter from an aunt", "date": "2019-01-28",
                 "sentiment": 0.6, "language": "zh"},
            ],
        },
        {
            "id": "shanghai",
            "name": "Shanghai",
            "nameCn": "上海",
            "type": "visit",
            "period": {"start": "2023-07-01", "end": "2023-08-01"},
            "intensity": 0.55,
            "valence": 0.5,
            "languageBalance": -0.7,
            "significance": 0.5,
            "duration": 0.08,
            "isVisit": True,
            "color": "#ff7f50",
            "notes": "Short family/cultural visit.",
        },
        {
            "id": "london",
            "name": "London",
            "nameCn": "伦敦",
            "type": "education",
            "period": {"start": "2022-01-01", "end": "2022-06-30"},
            "intensity": 0.7,
            "valence": 0.6,
            "languageBalance": 0.7,
            "significance": 0.75,
            "duration": 0.5,
            "color": "#9acd32",
            "notes": "Study abroad (half year).",
            "memories": [
                {"type": "document", "content": "Enrolment confirmation", "date": "2022-01-10",
                 "sentiment": 0.3, "language": "en"},
            ],
        },
        {
            "id": "boston",
            "name": "Boston",
            "nameCn": "波士顿",
            "type": "present",
            "period": {"start": "2022-07-01", "end": "2024-01-01"},
            "intensity": 0.8,
            "valence": 0.75,
            "languageBalance": 0.85,
            "significance": 0.9,
            "duration": 1.5,
            "color": "#20b2aa",
            "notes": "Design practice; narratives.",
            "memories": [
                {"type": "receipt", "content": "First studio rent", "date": "2022-07-03",
                 "sentiment": -0.2, "language": "en"},
                {"type": "photo", "content": "Charles River in winter", "date": "2023-01-21",
                 "sentiment": 0.7, "language": "en"},
                {"type": "letter", "content": "Card from home", "date": "2023-02-10",
                 "sentiment": 0.9, "language": "mixed"},
            ],
        },
        {
            "id": "newyork",
            "name": "New York",
            "nameCn": "纽约",
            "type": "work",
            "period": {"start": "2024-01-01", "end": "2024-06-30"},
            "intensity": 0.75,
            "valence": 0.65,
            "languageBalance": 0.9,
            "significance": 0.8,
            "duration": 0.5,
            "color": "#9370db",
            "notes": "Half-year in early 2024.",
        },
    ],
    "connections": [
        {"from": "london", "to": "boston", "year": 2022, "weight": 0.7},
        {"from": "boston", "to": "newyork", "year": 2024, "weight": 0.8},
        {"from": "boston", "to": "nanjing", "year": 2023, "weight": 0.3},
        {"from": "boston", "to": "shanghai", "year": 2023, "weight": 0.3},
        {"from": "chicago", "to": "london", "year": 2022, "weight": 0.5},
    ],
}


def load_sample_journey() -> JourneyData:
    return journey_from_dict(SAMPLE_JOURNEY)
