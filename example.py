"""Example usage of the coltables library."""

import logging

from coltables import as_table, desc, diff_tables, inspect_table

logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

# Wrap existing lists as columns; nothing is copied
data = {
    "city": ["Oslo", "Lima", "Oslo", "Pune", "Lima"],
    "year": [2021, 2021, 2022, 2022, 2022],
    "rain": [763.0, 12.5, 801.2, 722.0, 9.8],
}

with as_table(data) as weather:
    print(weather)

    # Only the assigned column gets new storage
    wetter = weather.mutate(rain="rain * 1.1")
    diff = diff_tables(weather, wetter)
    print("shared:", diff.shared, "rebuilt:", diff.different)

    # Grouping is an annotation; every column is still shared
    by_city = weather.group_by("city")
    print("all shared after group_by:", diff_tables(weather, by_city).all_shared)

    summary = by_city.summarise(total="sum(rain)", years="n_distinct(year)").arrange(desc("total"))
    for row in summary.rows():
        print(row)

    print(inspect_table(weather))
