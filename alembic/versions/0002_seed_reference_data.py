from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0002_seed_reference_data"
down_revision = "0001_create_schema"
branch_labels = None
depends_on = None


CITIES_BY_STATE = {
    "Delhi": ["New Delhi", "Dwarka", "Rohini"],
    "Gujarat": ["Ahmedabad", "Surat", "Vadodara", "Rajkot"],
    "Karnataka": ["Bengaluru", "Mysuru", "Mangaluru", "Hubballi"],
    "Kerala": ["Kochi", "Thiruvananthapuram", "Kozhikode"],
    "Maharashtra": ["Mumbai", "Pune", "Nagpur", "Nashik"],
    "Tamil Nadu": ["Chennai", "Coimbatore", "Madurai", "Tiruchirappalli"],
    "Telangana": ["Hyderabad", "Warangal", "Nizamabad"],
    "Uttar Pradesh": ["Lucknow", "Kanpur", "Noida", "Varanasi"],
    "West Bengal": ["Kolkata", "Howrah", "Durgapur", "Siliguri"],
}

states_table = sa.table(
    "states",
    sa.column("id", sa.Integer),
    sa.column("name", sa.String),
)
cities_table = sa.table(
    "cities",
    sa.column("name", sa.String),
    sa.column("state_id", sa.Integer),
)


def upgrade() -> None:
    bind = op.get_bind()
    op.bulk_insert(states_table, [{"name": name} for name in CITIES_BY_STATE])

    rows = bind.execute(sa.select(states_table.c.id, states_table.c.name)).fetchall()
    state_ids = {name: state_id for state_id, name in rows}
    op.bulk_insert(
        cities_table,
        [
            {"name": city, "state_id": state_ids[state]}
            for state, cities in CITIES_BY_STATE.items()
            for city in cities
        ],
    )


def downgrade() -> None:
    bind = op.get_bind()
    state_names = list(CITIES_BY_STATE)
    state_ids = [
        row[0]
        for row in bind.execute(
            sa.select(states_table.c.id).where(states_table.c.name.in_(state_names))
        ).fetchall()
    ]
    if state_ids:
        op.execute(cities_table.delete().where(cities_table.c.state_id.in_(state_ids)))
    op.execute(states_table.delete().where(states_table.c.name.in_(state_names)))
