"""GeoJSON markers for the issue map."""

from .lifecycle import Issue


def issue_feature(issue: Issue) -> dict:
    # GeoJSON positions are [lng, lat]
    return {
        'type': 'Feature',
        'id': issue.id,
        'geometry': {
            'type': 'Point',
            'coordinates': [issue.location.lng, issue.location.lat],
        },
        'properties': {
            'title': issue.title,
            'status': issue.status,
            'category': issue.category,
            'priority': issue.priority,
            'address': issue.location.address,
            'reported_at': issue.reported_at.isoformat(),
        },
    }


def issue_markers(issues) -> dict:
    """Return a FeatureCollection for ``issues`` with a bbox the map can fit to."""
    issues = list(issues)
    bbox = None
    if issues:
        lngs = [issue.location.lng for issue in issues]
        lats = [issue.location.lat for issue in issues]
        bbox = [min(lngs), min(lats), max(lngs), max(lats)]
    return {
        'type': 'FeatureCollection',
        'bbox': bbox,
        'features': [issue_feature(issue) for issue in issues],
    }
