import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import pydeck as pdk
import streamlit as st

from config import OUTPUTS_DIR, PROCESSED_SUBDIR, MAP_SAMPLE_ALL, RANDOM_SEED
from crime_pipelines.transform.aggregation import monthly_series
from crime_pipelines.transform.hotspots import compute_hotspots
from crime_pipelines.transform.schema import coerce_canonical
from crime_pipelines.transform.temporal import add_temporal_features, MONTH_LABELS
from crime_pipelines.utils.artifacts import ArtifactStore
from crime_pipelines.visualize.dashboard import (
    ALL_TYPES,
    filter_incidents,
    forecast_peak_month,
    geospatial_metrics,
    monthly_totals,
    next_month_forecast,
    overview_metrics,
    trend_direction,
)
from crime_pipelines.visualize.sampling import RandomSampler

st.set_page_config(page_title="Crime Analytics Dashboard", layout="wide")

store = ArtifactStore(OUTPUTS_DIR / PROCESSED_SUBDIR)


@st.cache_data
def load_incidents():
    if not store.exists("crime_data_clean"):
        return None
    df = coerce_canonical(store.load_table("crime_data_clean"))
    return add_temporal_features(df)


@st.cache_data
def load_forecasts():
    out = {}
    for name in ("ARIMA", "Prophet"):
        key = f"{name.lower()}_forecast"
        if store.exists(key):
            out[name] = store.load_table(key, parse_dates=["date"])
    return out


df = load_incidents()

st.title("Crime Analytics & Forecasting Dashboard")

if df is None:
    st.error(
        "No cleaned dataset found. Run the pipeline first: "
        "`python -m crime_pipelines.pipeline`"
    )
    st.stop()

forecasts = load_forecasts()

st.sidebar.header("Filters")
st.sidebar.caption("Filter incidents by date, crime type and arrest status.")

min_date, max_date = df["date"].min().date(), df["date"].max().date()
date_range = st.sidebar.date_input("Date range", value=(min_date, max_date), min_value=min_date, max_value=max_date)
if isinstance(date_range, (tuple, list)) and len(date_range) == 2:
    start, end = date_range
else:
    start, end = min_date, max_date

crime_type = st.sidebar.selectbox("Crime type", [ALL_TYPES] + sorted(df["crime_type"].unique()))
arrests_only = st.sidebar.checkbox("Arrests only")

df_view = filter_incidents(df, start=start, end=end, crime_type=crime_type, arrests_only=arrests_only)
st.sidebar.write(f"Rows in current view: {len(df_view):,}")

tab_overview, tab_ts, tab_forecast, tab_geo, tab_types, tab_data = st.tabs(
    ["📊 Overview", "📈 Time Series", "🔮 Forecasting", "🗺️ Geospatial", "🏷️ Crime Types", "🔎 Data Explorer"]
)

with tab_overview:
    m = overview_metrics(df_view)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total crimes", f"{m['total_crimes']:,}")
    c2.metric("Avg daily crimes", f"{m['avg_daily_crimes']:.1f}")
    c3.metric("Arrest rate", f"{m['arrest_rate']:.1%}" if m["arrest_rate"] is not None else "n/a")
    c4.metric("Top crime type", m["top_crime_type"] or "n/a")

    if df_view.empty:
        st.info("No incidents for this filter combo.")
    else:
        left, right = st.columns(2)
        with left:
            fig = px.line(monthly_totals(df_view), x="year_month", y="crime_count", title="Monthly crime trend")
            fig.update_layout(hovermode="x unified")
            st.plotly_chart(fig, use_container_width=True)
        with right:
            dist = df_view["crime_type"].value_counts().head(10).rename_axis("crime_type").rename("count").reset_index()
            fig = px.bar(dist, x="count", y="crime_type", orientation="h", title="Top 10 crime types")
            fig.update_layout(yaxis={"categoryorder": "total ascending"})
            st.plotly_chart(fig, use_container_width=True)

        map_data = RandomSampler(RANDOM_SEED).sample(df_view, MAP_SAMPLE_ALL)[["latitude", "longitude", "crime_type"]]
        st.pydeck_chart(
            pdk.Deck(
                map_provider="carto",
                map_style="light",
                initial_view_state=pdk.ViewState(
                    latitude=float(map_data["latitude"].mean()),
                    longitude=float(map_data["longitude"].mean()),
                    zoom=10,
                    pitch=0,
                ),
                layers=[
                    pdk.Layer(
                        "ScatterplotLayer",
                        data=map_data,
                        get_position="[longitude, latitude]",
                        get_radius=60,
                        get_fill_color="[220, 20, 60, 140]",
                        pickable=True,
                    )
                ],
                tooltip={"text": "{crime_type}"},
            )
        )

with tab_ts:
    if df_view.empty:
        st.info("No incidents for this filter combo.")
    else:
        daily = df_view.groupby("date").size().rename("incidents").sort_index()
        ts_df = pd.DataFrame({"Daily incidents": daily, "7-day rolling average": daily.rolling(7, center=True).mean()})
        st.line_chart(ts_df)

        left, right = st.columns(2)
        with left:
            by_weekday = df_view.groupby("weekday_name", observed=True).size().rename("count").reset_index()
            st.plotly_chart(px.bar(by_weekday, x="weekday_name", y="count", title="By day of week"), use_container_width=True)
        with right:
            by_month = df_view.groupby("month", observed=False).size().rename("count").reset_index()
            st.plotly_chart(
                px.bar(by_month, x="month", y="count", title="By month", category_orders={"month": MONTH_LABELS}),
                use_container_width=True,
            )

        if df_view["hour"].notna().any():
            by_hour = df_view.dropna(subset=["hour"]).groupby("hour").size().rename("count").reset_index()
            st.plotly_chart(px.line(by_hour, x="hour", y="count", markers=True, title="By hour of day"), use_container_width=True)

with tab_forecast:
    if not forecasts:
        st.info("No forecasts stored. Run the pipeline with forecasting enabled.")
    else:
        primary = forecasts.get("ARIMA", next(iter(forecasts.values())))
        history = monthly_series(monthly_totals(df))
        direction = trend_direction(history.to_numpy())

        c1, c2, c3 = st.columns(3)
        nxt = next_month_forecast(primary)
        c1.metric("Next month forecast", f"{nxt:,.0f}" if nxt is not None else "n/a")
        c2.metric("Recent trend (6 months)", direction or "n/a")
        c3.metric("Forecast peak month", forecast_peak_month(primary) or "n/a")

        for name, frame in forecasts.items():
            fig = go.Figure()
            fig.add_trace(go.Scatter(x=history.index, y=history.values, name="Historical", line={"color": "black"}))
            fig.add_trace(go.Scatter(x=frame["date"], y=frame["upper_95"], line={"width": 0}, showlegend=False))
            fig.add_trace(go.Scatter(x=frame["date"], y=frame["lower_95"], fill="tonexty", line={"width": 0}, name="95% interval"))
            fig.add_trace(go.Scatter(x=frame["date"], y=frame["upper_80"], line={"width": 0}, showlegend=False))
            fig.add_trace(go.Scatter(x=frame["date"], y=frame["lower_80"], fill="tonexty", line={"width": 0}, name="80% interval"))
            fig.add_trace(go.Scatter(x=frame["date"], y=frame["point_forecast"], name=f"{name} forecast"))
            fig.update_layout(title=f"{name} forecast", hovermode="x unified")
            st.plotly_chart(fig, use_container_width=True)

        if len(forecasts) >= 2:
            table = pd.concat(forecasts.values(), ignore_index=True)
            wide = table.pivot(index="date", columns="model_name", values="point_forecast").round(0)
            wide.index = wide.index.strftime("%b %Y")
            st.subheader("Model comparison")
            st.dataframe(wide, use_container_width=True)

with tab_geo:
    if df_view.empty:
        st.info("No incidents for this filter combo.")
    else:
        hotspots = compute_hotspots(df_view)
        g = geospatial_metrics(hotspots.cells, df_view)
        c1, c2, c3 = st.columns(3)
        c1.metric("High-crime areas (>75th pct)", f"{g['high_crime_areas']:,}")
        c2.metric("Highest hotspot", f"{g['highest_hotspot']:,} crimes")
        c3.metric("Geographic spread", f"{g['geographic_spread_km2']:,.0f} km²")

        cells = hotspots.cells.copy()
        cells["radius"] = cells["crime_count"].astype(float) ** 0.5 * 40
        st.pydeck_chart(
            pdk.Deck(
                map_provider="carto",
                map_style="light",
                initial_view_state=pdk.ViewState(
                    latitude=float(cells["centroid_lat"].mean()),
                    longitude=float(cells["centroid_lon"].mean()),
                    zoom=10,
                    pitch=0,
                ),
                layers=[
                    pdk.Layer(
                        "ScatterplotLayer",
                        data=cells,
                        get_position="[centroid_lon, centroid_lat]",
                        get_radius="radius",
                        get_fill_color="[255, 140, 0, 160]",
                        pickable=True,
                    )
                ],
                tooltip={"text": "Hotspot #{rank}\nCrimes: {crime_count}"},
            )
        )
        st.caption("Each circle is a grid cell. Larger circles = more incidents.")
        st.subheader("Top hotspots")
        st.dataframe(hotspots.top, use_container_width=True)

with tab_types:
    if df_view.empty:
        st.info("No incidents for this filter combo.")
    else:
        summary = (
            df_view.groupby("crime_type")
            .agg(count=("id", "size"), arrests=("arrest", lambda s: int(s.fillna(False).astype(bool).sum())))
            .reset_index()
            .sort_values("count", ascending=False)
        )
        summary["arrest_rate"] = (summary["arrests"] / summary["count"]).round(3)
        st.plotly_chart(px.treemap(summary, path=["crime_type"], values="count", title="Crime type share"), use_container_width=True)
        st.dataframe(summary, use_container_width=True)

with tab_data:
    st.subheader("Filtered incidents")
    cols = ["id", "timestamp", "crime_type", "location_description", "arrest", "domestic", "latitude", "longitude"]
    st.dataframe(df_view[cols].head(1000), use_container_width=True)
    st.download_button(
        "Download filtered CSV",
        df_view[cols].to_csv(index=False).encode("utf-8"),
        file_name="filtered_crimes.csv",
        mime="text/csv",
    )

st.markdown("---")
st.caption("Data: cleaned incident records from the crime analytics pipeline.")
