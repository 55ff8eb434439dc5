"""Rooms repository - read-only listing data needed by reservations.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor

from kbnb.domain.models import Location, Room


def get_room(cur: PgCursor, room_id: int) -> Room | None:
    """Load a room with its host and location.

    Bedroom and bathroom counts are derived from their child tables.
    """
    cur.execute(
        """
        SELECT r.id, r.name, r.host_id, h.name, h.image_url, r.image_url,
               r.bed_num,
               (SELECT count(*) FROM bedrooms b WHERE b.room_id = r.id),
               (SELECT count(*) FROM bathrooms ba WHERE ba.room_id = r.id),
               r.is_parking, r.is_smoking,
               l.country, l.city, l.borough, l.neighborhood, l.detail_address,
               l.latitude, l.longitude
        FROM rooms r
        JOIN users h ON h.id = r.host_id
        LEFT JOIN locations l ON l.id = r.location_id
        WHERE r.id = %s
        """,
        (room_id,),
    )
    row = cur.fetchone()
    if row is None:
        return None

    location = Location(
        country=row[11] or "",
        city=row[12] or "",
        borough=row[13] or "",
        neighborhood=row[14] or "",
        detail_address=row[15] or "",
        latitude=row[16],
        longitude=row[17],
    )
    return Room(
        id=row[0],
        name=row[1],
        host_id=row[2],
        host_name=row[3],
        host_image_url=row[4],
        image_url=row[5],
        bed_num=row[6] or 0,
        bedroom_num=row[7] or 0,
        bathroom_num=row[8] or 0,
        is_parking=bool(row[9]),
        is_smoking=bool(row[10]),
        location=location,
    )
