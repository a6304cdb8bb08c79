# surplus/services/units.py
UNITS = ("kg", "g", "pieces", "dozen", "portions")

# food type -> allowed units, first one is the default
FOOD_UNITS = {
    "Rice": ["kg", "g"],
    "Dal": ["kg", "g"],
    "Roti": ["pieces", "dozen"],
    "Sabzi": ["kg", "g", "portions"],
    "Other": ["kg", "g", "portions", "pieces"],
}


def food_type_of(food_item: str) -> str:
    text = (food_item or "").lower()
    for name in FOOD_UNITS:
        if name != "Other" and name.lower() in text:
            return name
    return "Other"


def units_for(food_item: str) -> list:
    return list(FOOD_UNITS[food_type_of(food_item)])


def default_unit(food_item: str) -> str:
    return units_for(food_item)[0]

