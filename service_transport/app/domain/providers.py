"""
Mock result providers for the non-flight transport modes.
"""

import math
import secrets
import time
from typing import Any, Dict, List, Optional


MAX_RESULTS = 20

TRAIN_SERVICES: List[Dict[str, Any]] = [
    {
        "trainName": "Rajdhani Express",
        "trainNumber": "12951",
        "price": 800,
        "departureTime": "16:55",
        "arrivalTime": "08:10",
        "duration": "15h 15m",
        "class": "3A",
    },
    {
        "trainName": "Shatabdi Express",
        "trainNumber": "12002",
        "price": 900,
        "departureTime": "06:00",
        "arrivalTime": "14:30",
        "duration": "8h 30m",
        "class": "CC",
    },
    {
        "trainName": "Duronto Express",
        "trainNumber": "12259",
        "price": 750,
        "departureTime": "22:50",
        "arrivalTime": "12:35",
        "duration": "13h 45m",
        "class": "SL",
    },
]

BUS_CATALOGUE: List[Dict[str, Any]] = [
    {
        "id": "bus-1",
        "operatorName": "RedBus Express",
        "busType": "AC Sleeper",
        "departureTime": "22:00",
        "arrivalTime": "06:00",
        "duration": "8h 0m",
        "price": 1200,
        "seatsAvailable": 12,
        "rating": "4.3",
        "route": ["Delhi", "Mumbai", "Pune", "Bangalore", "Chennai", "Kolkata", "Hyderabad", "Ahmedabad"],
    },
    {
        "id": "bus-2",
        "operatorName": "Travels India",
        "busType": "AC Semi-Sleeper",
        "departureTime": "23:30",
        "arrivalTime": "07:30",
        "duration": "8h 0m",
        "price": 1000,
        "seatsAvailable": 8,
        "rating": "3.9",
        "route": ["Delhi", "Jaipur", "Mumbai", "Pune", "Goa", "Bangalore"],
    },
    {
        "id": "bus-3",
        "operatorName": "Express Tours",
        "busType": "Non-AC Sleeper",
        "departureTime": "20:00",
        "arrivalTime": "05:00",
        "duration": "9h 0m",
        "price": 800,
        "seatsAvailable": 15,
        "rating": "3.6",
        "route": ["Mumbai", "Pune", "Hyderabad", "Bangalore", "Chennai"],
    },
]

CAR_CATALOGUE: List[Dict[str, Any]] = [
    {
        "id": "car-1",
        "carModel": "Sedan - Swift Dzire",
        "carType": "AC",
        "pricePerKm": 12,
        "estimatedDistance": 300,
        "route": ["Delhi", "Mumbai", "Pune", "Bangalore", "Chennai", "Kolkata", "Hyderabad"],
    },
    {
        "id": "car-2",
        "carModel": "SUV - Innova",
        "carType": "AC",
        "pricePerKm": 15,
        "estimatedDistance": 280,
        "route": ["Delhi", "Jaipur", "Mumbai", "Pune", "Goa", "Bangalore"],
    },
    {
        "id": "car-3",
        "carModel": "Hatchback - Alto",
        "carType": "Non-AC",
        "pricePerKm": 8,
        "estimatedDistance": 320,
        "route": ["Mumbai", "Pune", "Hyderabad", "Bangalore", "Chennai", "Cochin"],
    },
]


def _booking_id(prefix: str) -> str:
    return f"{prefix}-{secrets.token_hex(5)[:9].upper()}"


def _serves(route: List[str], city: str) -> bool:
    needle = city.strip().casefold()
    return any(needle in stop.casefold() for stop in route)


def _on_route(entry: Dict[str, Any], source: str, destination: str) -> bool:
    return _serves(entry["route"], source) and _serves(entry["route"], destination)


def search_trains(source: str, destination: str, date: Optional[str]) -> List[Dict[str, Any]]:
    """Every fixed train service, echoing the requested route."""
    stamp = int(time.time() * 1000)
    return [
        {"id": f"train-{stamp}-{index}", "from": source, "to": destination, "date": date, **service}
        for index, service in enumerate(TRAIN_SERVICES, start=1)
    ][:MAX_RESULTS]


def search_buses(source: str, destination: str) -> List[Dict[str, Any]]:
    """Buses whose route serves both cities."""
    return [
        {
            **bus,
            "bookingId": _booking_id("BUS"),
            "amenities": ["AC", "WiFi", "Charging Port", "Water Bottle"],
        }
        for bus in BUS_CATALOGUE
        if _on_route(bus, source, destination)
    ][:MAX_RESULTS]


def search_cars(source: str, destination: str) -> List[Dict[str, Any]]:
    """Cars whose route serves both cities, with derived pricing and timing."""
    results = []
    for car in CAR_CATALOGUE:
        if not _on_route(car, source, destination):
            continue
        distance = car["estimatedDistance"]
        results.append({
            **car,
            "totalPrice": car["pricePerKm"] * distance,
            "bookingId": _booking_id("CAR"),
            "driver": "Professional Driver Included",
            "fuel": "Fuel Included",
            "estimatedTime": f"{math.ceil(distance / 60)}h {distance % 60}m",
            "features": ["AC", "Music System", "GPS Navigation", "First Aid Kit"],
        })
    return results[:MAX_RESULTS]
