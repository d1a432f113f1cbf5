#!/usr/bin/env python3
import json
import argparse
from pathlib import Path

import requests
import flexpolyline

API_URL = "http://127.0.0.1:8000/hazards/restrictions"

def load_route(args):
    """
    Route as a list of (lat, lon). Either a HERE flexible polyline string
    (--polyline) or a JSON file holding [[lat, lon], ...] or a GeoJSON
    LineString feature (--route-file).
    """
    if args.polyline:
        return [(lat, lon) for (lat, lon, *_) in flexpolyline.decode(args.polyline)]
    data = json.loads(Path(args.route_file).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        geom = data.get("geometry") or data
        if geom.get("type") != "LineString":
            raise SystemExit("GeoJSON input must be a LineString (or a Feature holding one).")
        # GeoJSON is [lon, lat]
        return [(lat, lon) for (lon, lat, *_) in geom["coordinates"]]
    return [(float(p[0]), float(p[1])) for p in data]

def to_feature_collection(route, restrictions):
    """
    LineString for the route plus one Point per restriction.
    GeoJSON expects [lon, lat] order for coordinates.
    """
    features = [{
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": [[lon, lat] for (lat, lon) in route]},
        "properties": {"role": "route", "points": len(route)},
    }]
    for r in restrictions:
        features.append({
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [r["lon"], r["lat"]]},
            "properties": {
                "kind": r["kind"],
                "value": r["value"],
                "unit": r["unit"],
                "road_name": r.get("road_name"),
                "osm_id": r.get("osm_id"),
            },
        })
    return {"type": "FeatureCollection", "features": features}

def main():
    parser = argparse.ArgumentParser(description="Look up OSM truck restrictions along a route and write GeoJSON.")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--polyline", help="HERE flexible polyline of the route")
    src.add_argument("--route-file", help="JSON [[lat, lon], ...] or GeoJSON LineString")
    parser.add_argument("--api", default=API_URL)
    parser.add_argument("--out", default="restrictions.geojson")
    args = parser.parse_args()

    route = load_route(args)
    if not route:
        raise SystemExit("Route is empty.")

    r = requests.post(args.api, json={"route": route}, timeout=60)
    r.raise_for_status()
    data = r.json()

    fc = to_feature_collection(route, data.get("restrictions", []))

    out_path = Path(args.out).resolve()
    out_path.write_text(json.dumps(fc, indent=2))
    print(f"✅ Wrote GeoJSON to: {out_path}")
    print(f"   {data.get('count', 0)} restrictions along {len(route)} route points")

if __name__ == "__main__":
    main()
