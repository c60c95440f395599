"""Plain-text rendering of provider payloads."""

import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

DATA_ATTRIBUTION = "Data provided by Environment and Climate Change Canada"

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")


def number(value: Any) -> str:
    """Render a number the way a user would type it (``40`` rather than ``40.0``)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _value(mapping: Mapping[str, Any], key: str, default: str = "Unknown") -> Any:
    value = mapping.get(key)
    return default if value is None or value == "" else value


def describe_location(location: str, province: Optional[str] = None) -> str:
    """Return ``"<location>[, <province>], Canada"`` for user-facing messages."""
    if province:
        return f"{location}, {province}, Canada"
    return f"{location}, Canada"


def format_alert(feature: Mapping[str, Any]) -> str:
    """Format one NWS alert feature into a block of text."""
    props = feature.get("properties") or {}
    return "\n".join(
        [
            f"Event: {_value(props, 'event')}",
            f"Area: {_value(props, 'areaDesc')}",
            f"Severity: {_value(props, 'severity')}",
            f"Status: {_value(props, 'status')}",
            f"Headline: {_value(props, 'headline', 'No headline')}",
            "---",
        ]
    )


def format_alerts(state: str, features: Sequence[Mapping[str, Any]]) -> str:
    state_code = state.upper()
    if not features:
        return f"No active weather alerts for {state_code}"
    alerts = [format_alert(feature) for feature in features]
    return f"Active Weather Alerts for {state_code}:\n\n" + "\n\n".join(alerts)


def format_forecast_period(period: Mapping[str, Any]) -> str:
    """Format one NWS forecast period."""
    return "\n".join(
        [
            f"{_value(period, 'name')}:",
            f"Temperature: {_value(period, 'temperature')}°{_value(period, 'temperatureUnit', 'F')}",
            f"Wind: {_value(period, 'windSpeed')} {_value(period, 'windDirection', '')}".rstrip(),
            f"{_value(period, 'shortForecast', 'No forecast available')}",
            "---",
        ]
    )


def format_forecast(latitude: float, longitude: float, periods: Sequence[Mapping[str, Any]]) -> str:
    body = "\n".join(format_forecast_period(period) for period in periods)
    return f"Forecast for {number(latitude)}, {number(longitude)}:\n\n{body}"


def _place(location_info: Mapping[str, Any]) -> str:
    parts = [location_info.get(key) for key in ("name", "region", "country")]
    return ", ".join(str(part) for part in parts if part)


def format_canada_current(payload: Mapping[str, Any]) -> str:
    """Format a weatherapi.com ``current.json`` payload."""
    location_info = payload.get("location") or {}
    current = payload.get("current") or {}
    condition = current.get("condition") or {}
    return "\n".join(
        [
            _place(location_info),
            f"Coordinates: {_value(location_info, 'lat')}, {_value(location_info, 'lon')}",
            f"Local Time: {_value(location_info, 'localtime')}",
            "",
            "Current Weather:",
            f"Temperature: {_value(current, 'temp_c')}°C (feels like {_value(current, 'feelslike_c')}°C)",
            f"Condition: {_value(condition, 'text')}",
            f"Wind: {_value(current, 'wind_kph')} km/h {_value(current, 'wind_dir', '')}".rstrip(),
            f"Humidity: {_value(current, 'humidity')}%",
            f"Pressure: {_value(current, 'pressure_mb')} mb",
            f"Visibility: {_value(current, 'vis_km')} km",
            f"UV Index: {_value(current, 'uv')}",
        ]
    )


def format_forecast_day(day: Mapping[str, Any]) -> str:
    day_data = day.get("day") or {}
    condition = day_data.get("condition") or {}
    return "\n".join(
        [
            f"{_value(day, 'date')}",
            f"Temperature: {_value(day_data, 'mintemp_c')}°C to {_value(day_data, 'maxtemp_c')}°C"
            f" (avg: {_value(day_data, 'avgtemp_c')}°C)",
            f"Condition: {_value(condition, 'text')}",
            f"Max Wind: {_value(day_data, 'maxwind_kph')} km/h",
            f"Total Precipitation: {_value(day_data, 'totalprecip_mm')} mm",
            f"Avg Humidity: {_value(day_data, 'avghumidity')}%",
            f"UV Index: {_value(day_data, 'uv')}",
        ]
    )


def format_canada_forecast(payload: Mapping[str, Any], days: Sequence[Mapping[str, Any]]) -> str:
    """Format the forecast days of a weatherapi.com ``forecast.json`` payload."""
    body = "\n\n".join(format_forecast_day(day) for day in days)
    return f"Weather Forecast for {_place(payload.get('location') or {})}:\n\n{body}"


def _monthly_table(props: Mapping[str, Any], suffix: str, unit: str) -> List[str]:
    cells = []
    for month in MONTHS:
        value = props.get(f"{month}_{suffix}")
        if value is not None:
            cells.append(f"{month.title()}: {value}{unit}")
    # Four months per row
    return ["  ".join(cells[i : i + 4]) for i in range(0, len(cells), 4)]


def best_station_match(features: Sequence[Mapping[str, Any]], location: str) -> Mapping[str, Any]:
    """Pick the feature whose station name contains ``location``, else the first one."""
    needle = location.lower()
    for feature in features:
        props = feature.get("properties") or {}
        if needle in str(props.get("STATION_NAME") or "").lower():
            return feature
    return features[0]


def format_climate_normals(feature: Mapping[str, Any], province: Optional[str] = None) -> str:
    """Format one GeoMet ``climate-normals`` feature."""
    props = feature.get("properties") or {}
    coordinates = (feature.get("geometry") or {}).get("coordinates")

    lines = [f"Climate Normals (1981-2010) for {props.get('STATION_NAME') or 'Unknown Station'}"]
    province_name = props.get("PROVINCE") or province
    if province_name:
        lines[0] += f", {province_name}"
    lines.append("")
    if coordinates and len(coordinates) >= 2:
        lines.append(f"Location: {coordinates[1]}, {coordinates[0]}")
    else:
        lines.append("Location: Not available")

    temperatures = _monthly_table(props, "MEAN", "°C")
    if temperatures:
        lines.extend(["", "Monthly Temperature Averages (°C):"] + temperatures)
    precipitation = _monthly_table(props, "PRECIP", "mm")
    if precipitation:
        lines.extend(["", "Monthly Precipitation Averages (mm):"] + precipitation)

    summary = []
    if props.get("ANN_MEAN_TEMP") is not None:
        summary.append(f"Mean Temperature: {props['ANN_MEAN_TEMP']}°C")
    if props.get("ANN_TOTAL_PRECIP") is not None:
        summary.append(f"Total Precipitation: {props['ANN_TOTAL_PRECIP']}mm")
    if summary:
        lines.extend(["", "Annual Summary:"] + summary)

    lines.extend(["", "Data period: 1981-2010 Climate Normals", DATA_ATTRIBUTION])
    return "\n".join(lines)


def distance_km(latitude: float, longitude: float, other_latitude: float, other_longitude: float) -> float:
    """Equirectangular distance, accurate enough for a 50 km search radius."""
    dy = (other_latitude - latitude) * 111
    dx = (other_longitude - longitude) * 111 * math.cos(math.radians(latitude))
    return math.sqrt(dx * dx + dy * dy)


def format_stations(
    latitude: float, longitude: float, radius_km: float, features: Sequence[Dict[str, Any]]
) -> str:
    """Format GeoMet ``swob-stations`` features as a numbered list."""
    lines = [
        f"Weather Stations within {number(radius_km)}km of {number(latitude)}, {number(longitude)}",
        "",
        f"Found {len(features)} stations:",
        "",
    ]
    for index, station in enumerate(features, start=1):
        props = station.get("properties") or {}
        coordinates = (station.get("geometry") or {}).get("coordinates")
        name = props.get("STN_NAM") or props.get("STATION_NAME") or f"Station {index}"
        province = props.get("STN_PROV") or props.get("PROVINCE")
        station_id = props.get("STN_ID") or props.get("STATION_ID")

        lines.append(f"{index}. {name}" + (f" ({province})" if province else ""))
        if coordinates and len(coordinates) >= 2:
            lines.append(f"   Location: {coordinates[1]}, {coordinates[0]}")
            distance = distance_km(latitude, longitude, coordinates[1], coordinates[0])
            lines.append(f"   Distance: {distance:.1f} km")
        if station_id:
            lines.append(f"   Station ID: {station_id}")
        lines.append("")

    lines.append(DATA_ATTRIBUTION)
    return "\n".join(lines)
