from .planner import settle
from .snapshot import snapshot_from_dict

DEMO = {
    "gridNodes": [
        {"id": "bergen", "position": {"lat": 61.976002, "lng": 9.045196}, "isFixed": True, "name": "Bergen"},
        {"id": "ostersund", "position": {"lat": 62.386162, "lng": 15.279737}, "isFixed": True},
        {"id": "jutland", "position": {"lat": 56.360222, "lng": 9.308628}, "isFixed": True, "name": "Jutland"},
        {"id": "doggerbank", "position": {"lat": 55.323980, "lng": 3.864381}, "isFixed": False},
        {"id": "emden", "position": {"lat": 53.167678, "lng": 6.937746}, "isFixed": True, "name": "Emden"},
        {"id": "vanern", "position": {"lat": 57.746232, "lng": 14.752875}, "isFixed": False},
        {"id": "skagerrak", "position": {"lat": 57.040730, "lng": 11.591619}, "isFixed": False},
    ],
    "gridLinks": [
        {"id": "bergen-ostersund", "sourceId": "ostersund", "targetId": "bergen"},
        {"id": "vanern-ostersund", "sourceId": "vanern", "targetId": "ostersund"},
        {"id": "jutland-doggerbank", "sourceId": "jutland", "targetId": "doggerbank"},
        {"id": "emden-doggerbank", "sourceId": "emden", "targetId": "doggerbank"},
        {"id": "skagerrak-jutland", "sourceId": "skagerrak", "targetId": "jutland"},
        {"id": "bergen-skagerrak", "sourceId": "bergen", "targetId": "skagerrak"},
        {"id": "ostersund-skagerrak", "sourceId": "ostersund", "targetId": "skagerrak"},
        {"id": "vanern-skagerrak", "sourceId": "vanern", "targetId": "skagerrak"},
    ],
    "stations": [
        {"id": "hub", "type": "Hauptstandort", "position": {"lat": 57.350248, "lng": 6.701660}},
        {"id": "wave", "type": "Wellenkraftwerk", "position": {"lat": 62.471724, "lng": 6.013692}},
        {"id": "wind", "type": "Windpark", "position": {"lat": 61.648162, "lng": 5.486829}},
        {"id": "pumped", "type": "Pumpspeicherkraftwerk", "position": {"lat": 59.333189, "lng": 6.760080}},
        {"id": "solar", "type": "Photovoltaik", "position": {"lat": 56.413901, "lng": 16.419228}},
        {"id": "chiller", "type": "Kältemaschine", "position": {"lat": 57.433114, "lng": 5.646973}},
    ],
}


def run():
    snapshot = snapshot_from_dict(DEMO)
    plan = settle(snapshot)
    print(f"Settled after {plan.passes} pass(es), converged={plan.converged}")
    for station in plan.snapshot.stations:
        result = plan.results.get(station.id)
        if station.type.is_hub:
            print(f"{station.id:>8}  hub attached to {station.connected_link_id}")
        elif result is None:
            print(f"{station.id:>8}  not connected")
        else:
            print(
                f"{station.id:>8}  geo={result.geo_distance:8.1f} km  "
                f"cable={result.cable_distance:8.1f} km  via {station.connected_link_id or 'direct'}"
            )


if __name__ == "__main__":
    run()
