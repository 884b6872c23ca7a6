# frontend/app.py

import os
import sys
import airportsdata
# Make project root importable so we can import punctuality.*
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import streamlit as st
import pandas as pd
import plotly.express as px
from sqlalchemy.exc import SQLAlchemyError

from punctuality.db import SessionLocal
from punctuality.delays import format_hhmm
from punctuality.models import DelayCause, format_date
from punctuality.queries import (
    average_delay_by_airline,
    average_delay_by_airport,
    delays_by_month,
    get_delay_reasons,
    search_flights,
    table_counts,
)

# ----------------------- Streamlit Page Config -----------------------

st.set_page_config(
    page_title="Flight Punctuality Explorer",
    layout="wide",
)

SEARCH_LIMIT = 500


# ----------------------- Helpers & Caching -----------------------


def plot_config():
    """
    Plotly config:
    - disable scroll zoom
    - hide Plotly logo
    - keep only: pan, autoscale, PNG export
    """
    return {
        "displaylogo": False,
        "scrollZoom": False,
        "modeBarButtonsToRemove": [
            "zoom2d",
            "zoomIn2d",
            "zoomOut2d",
            "resetScale2d",
            "select2d",
            "lasso2d",
            "hoverClosestCartesian",
            "hoverCompareCartesian",
            "toggleSpikelines",
        ],
    }


@st.cache_data
def load_counts() -> dict:
    with SessionLocal() as session:
        return table_counts(session)


@st.cache_data
def _get_all_airport_coords():
    """Get coordinates for all airports using airportsdata library."""
    airports = airportsdata.load('IATA')
    coords_dict = {}
    for iata, info in airports.items():
        if info.get('lat') and info.get('lon'):
            coords_dict[iata] = (info['lat'], info['lon'])
    return coords_dict


def format_results(df: pd.DataFrame) -> pd.DataFrame:
    """Human-readable view of search_flights output."""
    if df.empty:
        return df
    out = pd.DataFrame(
        {
            "Date": df["date"].map(format_date),
            "Flight": df["airline_code"] + df["flight_number"].astype(str),
            "Airline": df["airline_name"],
            "From": df["origin"] + " - " + df["origin_city"],
            "To": df["destination"] + " - " + df["destination_city"],
            "Sched. Dep": df["scheduled_departure"].map(format_hhmm),
            "Dep": df["actual_departure"].map(format_hhmm),
            "Sched. Arr": df["scheduled_arrival"].map(format_hhmm),
            "Arr": df["actual_arrival"].map(format_hhmm),
            "Delay (min)": df["delay_minutes"],
        }
    )
    return out


# ----------------------- Visualization Functions -----------------------


def airline_delay_chart(df: pd.DataFrame, year: int):
    if df.empty:
        return None
    fig = px.bar(
        df,
        x="airline_code",
        y="avg_delay",
        hover_data=["airline_name", "flights"],
        title=f"Average Arrival Delay by Airline ({year})",
        labels={"airline_code": "Airline", "avg_delay": "Average Delay (minutes)"},
    )
    return fig


def airport_delay_chart(df: pd.DataFrame, year: int, top_n: int = 20):
    if df.empty:
        return None
    fig = px.bar(
        df.head(top_n),
        x="airport",
        y="avg_delay",
        hover_data=["airport_name", "flights"],
        title=f"Top {top_n} Departure Airports by Average Delay ({year})",
        labels={"airport": "Airport", "avg_delay": "Average Delay (minutes)"},
    )
    return fig


def monthly_delay_chart(df: pd.DataFrame, airport: str):
    if df.empty:
        return None
    fig = px.line(
        df,
        x="month",
        y="avg_delay",
        markers=True,
        title=f"Average Delay for Flights Departing {airport} by Month",
        labels={"month": "Month", "avg_delay": "Average Delay (minutes)"},
    )
    return fig


def delay_hotspot_map(df: pd.DataFrame):
    """Interactive map of average arrival delay per airport."""
    if df.empty:
        return None

    coords = _get_all_airport_coords()
    agg = df.copy()
    agg["lat"] = agg["airport"].map(lambda c: coords.get(c, (None, None))[0])
    agg["lon"] = agg["airport"].map(lambda c: coords.get(c, (None, None))[1])

    agg_map = agg.dropna(subset=["lat", "lon"])
    if agg_map.empty:
        return None

    fig = px.scatter_mapbox(
        agg_map,
        lat="lat",
        lon="lon",
        color="avg_delay",
        size="flights",
        hover_name="airport",
        hover_data=["airport_name", "avg_delay", "flights"],
        title="Average Delay by Departure Airport",
        labels={"avg_delay": "Avg Arrival Delay (minutes)"},
        zoom=3,
        center={"lat": 39.8283, "lon": -98.5795},
    )

    fig.update_layout(
        mapbox_style="open-street-map",
        margin={"r": 0, "t": 50, "l": 0, "b": 0},
    )
    return fig


# ----------------------- Store Check -----------------------

try:
    counts = load_counts()
except SQLAlchemyError as e:
    st.error(f"Could not connect to the flight database: {e}")
    st.stop()

st.sidebar.title("Database")
for table, count in counts.items():
    st.sidebar.write(f"{table}: **{count:,}**")

# ----------------------- Main Layout -----------------------

st.title("Flight Punctuality Explorer")

feature = st.radio(
    "Select Feature",
    ["Flight Search", "Delay Analysis"],
    horizontal=True,
)

# ----------------------- Feature 1: Flight Search -----------------------

if feature == "Flight Search":
    st.subheader("Flight Search")

    col1, col2, col3 = st.columns(3)
    airline = col1.text_input("Airline code", placeholder="DL")
    flight_number = col2.text_input("Flight number", placeholder="DL1234")
    reason_options = ["Any"] + [c.name for c in DelayCause]
    reason = col3.selectbox(
        "Delay reason",
        reason_options,
        format_func=lambda n: n if n == "Any" else DelayCause[n].label,
    )

    col4, col5, col6 = st.columns(3)
    origin = col4.text_input("Origin", placeholder="JFK")
    destination = col5.text_input("Destination", placeholder="LAX")
    min_delay = col6.number_input("Minimum delay (minutes)", min_value=0, value=0, step=5)

    use_dates = st.checkbox("Filter by date range")
    start_date = end_date = None
    if use_dates:
        col7, col8 = st.columns(2)
        start_date = col7.date_input("From")
        end_date = col8.date_input("To")

    try:
        with SessionLocal() as session:
            results = search_flights(
                session,
                airline=airline or None,
                flight_number=flight_number or None,
                origin=origin or None,
                destination=destination or None,
                start_date=start_date,
                end_date=end_date,
                min_delay=min_delay or None,
                delay_reason=None if reason == "Any" else reason,
                limit=SEARCH_LIMIT,
            )
    except ValueError as e:
        st.warning(str(e))
        st.stop()

    st.write(f"Flights found: **{len(results):,}** (showing at most {SEARCH_LIMIT})")

    if results.empty:
        st.info("No flights match the current search.")
    else:
        st.dataframe(format_results(results), use_container_width=True)

        flight_labels = {
            r.flight_id: f"{r.airline_code}{r.flight_number} "
            f"{r.origin}->{r.destination} on {format_date(r.date)}"
            for r in results.itertuples()
        }
        selected = st.selectbox(
            "Show delay reasons for",
            list(flight_labels),
            format_func=flight_labels.get,
        )
        with SessionLocal() as session:
            reasons = get_delay_reasons(session, int(selected))
        if reasons.empty:
            st.write("No delay reasons recorded for this flight.")
        else:
            st.table(reasons[["label", "delay_length"]].rename(
                columns={"label": "Reason", "delay_length": "Minutes"}
            ))

# ----------------------- Feature 2: Delay Analysis -----------------------

elif feature == "Delay Analysis":
    st.subheader("Delay Analysis")

    year = st.number_input("Year", min_value=1987, max_value=2100, value=2023, step=1)

    with SessionLocal() as session:
        airline_df = average_delay_by_airline(session, int(year))
        airport_df = average_delay_by_airport(session, int(year))

    if airline_df.empty:
        st.warning("No flights with known arrival times for this year.")
    else:
        fig = airline_delay_chart(airline_df, int(year))
        st.plotly_chart(fig, use_container_width=True, config=plot_config())

        fig = airport_delay_chart(airport_df, int(year))
        if fig is not None:
            st.plotly_chart(fig, use_container_width=True, config=plot_config())

        fig = delay_hotspot_map(airport_df)
        if fig is not None:
            st.plotly_chart(fig, use_container_width=True, config=plot_config())

    st.markdown("---")
    col1, col2, col3 = st.columns(3)
    airport = col1.text_input("Airport", value="LAX")
    start_year = col2.number_input("From year", min_value=1987, max_value=2100, value=2020)
    end_year = col3.number_input("To year", min_value=1987, max_value=2100, value=2023)

    if airport:
        with SessionLocal() as session:
            monthly_df = delays_by_month(session, airport, int(start_year), int(end_year))
        fig = monthly_delay_chart(monthly_df, airport.upper())
        if fig is None:
            st.info(f"No departures from {airport.upper()} in the selected years.")
        else:
            st.plotly_chart(fig, use_container_width=True, config=plot_config())
