import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def cases():
    return pd.DataFrame(
        {
            "id": [1, 2, 3, 4, 5, 6],
            "infection_date": pd.to_datetime(
                ["2015-03-02", "2015-03-15", "2015-03-29", "2015-03-10", "2015-03-31", "2015-03-04"]
            ),
            "spatial_unit": ["A", "A", "B", "B", "A", "X"],
            "lab_result": [2, 3, 2, 4, 2, 3],
        }
    )


def make_climate(units=("A", "B"), start="2015-01-01", end="2015-06-30"):
    frames = []
    for i, unit in enumerate(units):
        dates = pd.date_range(start, end, freq="D")
        n = len(dates)
        base = np.arange(n, dtype=float)
        frames.append(
            pd.DataFrame(
                {
                    "spatial_unit": unit,
                    "date": dates,
                    "temperature_max": 30.0 + base % 5 + i,
                    "temperature_min": 20.0 + base % 3 + i,
                    "temperature_mean": 25.0 + base % 7 + i,
                    "precipitation_sum": base + 100 * i,
                }
            )
        )
    return pd.concat(frames, ignore_index=True)


@pytest.fixture
def climate():
    return make_climate()
