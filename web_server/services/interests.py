"""Groups free-text research interests under broad categories."""

INTEREST_CATEGORIES: dict[str, list[str]] = {
    "Artificial Intelligence": [
        "machine learning",
        "deep learning",
        "neural networks",
        "ai",
        "computer vision",
        "natural language processing",
        "nlp",
    ],
    "Data Science": [
        "data analysis",
        "data mining",
        "big data",
        "statistics",
        "data visualization",
    ],
    "Software Engineering": [
        "web development",
        "frontend",
        "backend",
        "mobile app development",
        "software architecture",
        "software testing",
    ],
    "Cybersecurity": [
        "network security",
        "information security",
        "cryptography",
        "ethical hacking",
        "penetration testing",
    ],
    "Computer Networks": [
        "networking",
        "wireless communication",
        "iot",
        "cloud networking",
        "network protocols",
    ],
    "Database Systems": [
        "sql",
        "nosql",
        "database design",
        "data modeling",
        "mongodb",
        "mysql",
    ],
    "Human-Computer Interaction": [
        "ui design",
        "ux design",
        "usability testing",
        "interaction design",
        "user experience",
    ],
}

_KEYWORD_TO_CATEGORY = {
    keyword: category
    for category, keywords in INTEREST_CATEGORIES.items()
    for keyword in keywords
}


def map_to_category(interest: str) -> str:
    """Category for a single interest, or the interest itself when unknown."""
    return _KEYWORD_TO_CATEGORY.get(interest.strip().lower(), interest)


def map_interests_to_categories(interests: list[str]) -> list[str]:
    # dict keeps first-seen order while deduplicating
    mapped = {map_to_category(i): None for i in interests}
    return list(mapped)
