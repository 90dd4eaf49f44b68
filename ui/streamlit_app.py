import pandas as pd
import requests
import streamlit as st

from workout_ui.api_client import (
    TIMEFRAMES,
    add_workout,
    delete_workout,
    error_detail,
    get_stats,
    get_workouts,
)

st.set_page_config(page_title="Workout Tracker", layout="wide")

st.title("Workout Tracker")
st.caption("Log your runs and see how the week is going.")

tab_add, tab_history, tab_stats = st.tabs(["Add workout", "History", "Stats"])


with tab_add:
    st.subheader("New workout")

    col1, col2 = st.columns(2)

    with col1:
        workout_name = st.text_input("Workout name", value="")
        duration_min = st.number_input("Duration (min)", min_value=1.0, max_value=1440.0, value=30.0, step=1.0)

    with col2:
        distance_km = st.number_input("Distance (km)", min_value=0.1, max_value=500.0, value=5.0, step=0.1)
        heart_rate = st.number_input("Average heart rate", min_value=30, max_value=250, value=145, step=1)

    if st.button("Add workout", type="primary"):
        payload = {
            "workout_name": workout_name.strip(),
            # the API stores seconds
            "duration": int(round(duration_min * 60)),
            "distance": float(distance_km),
            "heart_rate": int(heart_rate),
        }
        try:
            created = add_workout(payload)
            workout = created["workout"]
            st.success(created["message"])
            if workout.get("weather"):
                st.image(workout["weather"], width=64)
            if workout.get("calories_burned") is not None:
                st.metric("Calories burned", f"{workout['calories_burned']} kcal")
        except requests.HTTPError as e:
            st.error(error_detail(e))
        except Exception as e:
            st.exception(e)


with tab_history:
    st.subheader("History")

    col_f1, col_f2, col_f3, col_f4 = st.columns(4)
    with col_f1:
        name_filter = st.text_input("Name contains", value="")
        heart_rate_filter = st.text_input("Heart rate (exact)", value="")
    with col_f2:
        min_duration = st.number_input("Min duration (min)", min_value=0, value=0, step=5)
        max_duration = st.number_input("Max duration (min, 0 = any)", min_value=0, value=0, step=5)
    with col_f3:
        min_distance = st.number_input("Min distance (km)", min_value=0.0, value=0.0, step=0.5)
        max_distance = st.number_input("Max distance (km, 0 = any)", min_value=0.0, value=0.0, step=0.5)
    with col_f4:
        start_date = st.text_input("Start date", value="today", help="'today', 'yesterday' or YYYY-MM-DD")
        end_date = st.text_input("End date", value="", help="Defaults to the start date")

    try:
        items = get_workouts(
            workout_name=name_filter.strip(),
            min_duration=min_duration * 60 if min_duration else None,
            max_duration=max_duration * 60 if max_duration else None,
            min_distance=min_distance or None,
            max_distance=max_distance or None,
            heart_rate=heart_rate_filter.strip(),
            start_date=start_date.strip(),
            end_date=end_date.strip(),
        )
        df = pd.DataFrame(items)

        if df.empty:
            st.warning("No workouts match these filters.")
        else:
            df["date_time"] = pd.to_datetime(df["date_time"], errors="coerce")
            df["duration_min"] = (df["duration"] / 60).round(1)
            st.dataframe(
                df.sort_values("date_time", ascending=False)[
                    ["workout_name", "date_time", "duration_min", "distance", "heart_rate", "calories_burned", "weather"]
                ],
                use_container_width=True,
                hide_index=True,
                column_config={"weather": st.column_config.ImageColumn("Weather")},
            )

            to_delete = st.selectbox("Delete workout", [""] + df["workout_name"].tolist())
            if to_delete and st.button("Delete"):
                delete_workout(to_delete)
                st.rerun()

    except requests.HTTPError as e:
        st.error(error_detail(e))
    except Exception as e:
        st.exception(e)


with tab_stats:
    st.subheader("Stats")

    timeframe = st.radio("Timeframe", TIMEFRAMES, horizontal=True)
    try:
        stats = get_stats(timeframe)
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Total distance", f"{stats['total_distance']:.2f} km")
        c2.metric("Avg duration", f"{stats['avg_duration']:.1f} min")
        c3.metric("Avg heart rate", f"{stats['avg_heartrate']} bpm")
        c4.metric("Avg calories", f"{stats['avg_calories']} kcal")
    except requests.HTTPError as e:
        st.error(error_detail(e))
    except Exception as e:
        st.exception(e)
