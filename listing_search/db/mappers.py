from typing import Any, Dict, List

from ..utils.coerce import is_missing, to_bool, to_float, to_int, to_str

LIST_COLUMNS = ("features", "accessibility_features", "nearby_amenities", "images")
FLAG_COLUMNS = ("open_house", "virtual_tour", "price_reduced", "foreclosure", "short_sale")


def _labels(v: Any) -> List[str]:
    if is_missing(v):
        return []
    if isinstance(v, str):
        return [part.strip() for part in v.split(";") if part.strip()]
    return [str(item) for item in v if not is_missing(item)]


def _opt_str(v: Any):
    return None if is_missing(v) or v == "" else str(v)


def map_listing_row(r: Dict[str, Any]) -> Dict[str, Any]:
    row = {
        "id": to_str(r.get("id")),
        "title": to_str(None if is_missing(r.get("title")) else r.get("title")),
        "description": _opt_str(r.get("description")),
        "address": to_str(None if is_missing(r.get("address")) else r.get("address")),
        "city": _opt_str(r.get("city")),
        "state": _opt_str(r.get("state")),
        "zip_code": _opt_str(r.get("zip_code")),
        "price": to_float(r.get("price")),
        "bedrooms": to_int(r.get("bedrooms")),
        "bathrooms": to_float(r.get("bathrooms")),
        "property_type": _opt_str(r.get("property_type")),
        "square_feet": to_int(r.get("square_feet")),
        "year_built": to_int(r.get("year_built")),
        "lot_size": to_float(r.get("lot_size")),
        "garages": to_int(r.get("garages")),
        "hoa_fee": to_float(r.get("hoa_fee")),
        "status": _opt_str(r.get("status")),
        "created_at": _opt_str(r.get("created_at")),
        "latitude": to_float(r.get("latitude")),
        "longitude": to_float(r.get("longitude")),
    }
    for column in LIST_COLUMNS:
        row[column] = _labels(r.get(column))
    for column in FLAG_COLUMNS:
        row[column] = to_bool(None if is_missing(r.get(column)) else r.get(column))
    return row
