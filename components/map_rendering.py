"""
Map rendering for waterbody charts.
Draws waterbody polygons, observation points and one chart marker per waterbody on a folium map.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import folium
import geopandas as gpd

from waterbodies.charts import WaterbodyChart
from waterbodies.geometry import TARGET_CRS, calculate_centroid
from waterbodies.layers import Waterbody
from waterbodies.observations import Observation, observations_to_frame

# Default popup CSS applied to all maps
POPUP_CSS = """
<style>
.leaflet-popup-content { min-width: 240px !important; max-width: 480px !important; }
.leaflet-popup-content table { width: 100% !important; table-layout: auto; }
</style>
"""

# Canberra
DEFAULT_CENTER = (-35.28, 149.13)

# Forel-Ule scale, FU 1 (indigo blue) .. FU 21 (cola brown)
FU_COLORS = {
    1: "#2158bc", 2: "#316dc5", 3: "#327cbb", 4: "#4b80a0", 5: "#568f96",
    6: "#6d9298", 7: "#698c86", 8: "#759e72", 9: "#7ba654", 10: "#7dae38",
    11: "#94b660", 12: "#94b660", 13: "#a5bc76", 14: "#a2b057", 15: "#a5a459",
    16: "#a5a434", 17: "#a69d3b", 18: "#b08c3d", 19: "#a8844b", 20: "#9c7149",
    21: "#885f36",
}

LAYER_COLORS = ['MidnightBlue', 'DodgerBlue', 'CadetBlue', 'DarkCyan', 'LightSeaGreen', 'SlateBlue', 'Purple']


def fu_color(fu_value: Optional[int]) -> str:
    return FU_COLORS.get(fu_value, "gray")


def create_base_map(
    observations: Sequence[Observation] = None,
    center: tuple = None,
    zoom: int = 10,
    apply_popup_css: bool = True
) -> folium.Map:
    """
    Create a base Folium map centered on the observations or a default location.

    Args:
        observations: Observations to center on
        center: Override center coordinates (lat, lon)
        zoom: Initial zoom level
        apply_popup_css: Whether to apply popup styling CSS

    Returns:
        Configured Folium Map object
    """
    if center:
        map_center = center
    elif observations:
        lon, lat = calculate_centroid([o.coordinates for o in observations])
        map_center = (lat, lon)
    else:
        map_center = DEFAULT_CENTER

    map_obj = folium.Map(location=list(map_center), zoom_start=zoom)
    if apply_popup_css:
        map_obj.get_root().header.add_child(folium.Element(POPUP_CSS))
    return map_obj


def add_waterbody_layer(
    map_obj: folium.Map,
    waterbodies: Sequence[Waterbody],
    name: str,
    color: str = 'DodgerBlue',
    show: bool = True
) -> None:
    """
    Add the polygons of one waterbody layer.

    Args:
        map_obj: Folium map to add the layer to
        waterbodies: Waterbodies of the layer
        name: Layer control label
        color: Outline and fill color
        show: Whether layer is visible by default
    """
    if not waterbodies:
        return

    gdf = gpd.GeoDataFrame(
        {"name": [w.name for w in waterbodies]},
        geometry=[w.geometry for w in waterbodies],
        crs=TARGET_CRS,
    )
    gdf.explore(
        m=map_obj,
        name=name,
        color=color,
        style_kwds={'weight': 1, 'fillOpacity': 0.2},
        tooltip=["name"],
        popup=False,
        show=show
    )


def add_observation_layer(
    map_obj: folium.Map,
    observations: Sequence[Observation],
    name: str = "EOW observations",
    radius: int = 5,
    show: bool = True
) -> None:
    """Add observation points colored by their FU value."""
    if not observations:
        return

    group = folium.FeatureGroup(name=name, show=show)
    df = observations_to_frame(observations)
    for _, row in df.iterrows():
        popup_fields = ["code", "fu_value", "date_photo", "device_model"]
        html = "<table>" + "".join(
            f"<tr><th>{f}</th><td>{row.get(f, '')}</td></tr>" for f in popup_fields
        ) + "</table>"
        folium.CircleMarker(
            location=[row["y"], row["x"]],
            radius=radius,
            color=fu_color(row["fu_value"]),
            fill=True,
            fill_opacity=0.9,
            popup=folium.Popup(html),
        ).add_to(group)
    group.add_to(map_obj)


def _chart_popup(chart: WaterbodyChart) -> str:
    rows = "".join(
        f'<tr><td style="background:{fu_color(int(item["name"]))};width:14px"></td>'
        f'<td>FU {item["name"]}</td><td>{item["y"]["count"]}</td></tr>'
        for item in chart.pie_data
    )
    return f"<b>{chart.waterbody_name}</b><table>{rows}</table>"


def add_chart_layer(
    map_obj: folium.Map,
    charts: List[WaterbodyChart],
    name: str,
    draw_lines: bool = False,
    show: bool = True
) -> None:
    """
    Add one marker per waterbody chart at the centroid of its observations.

    Args:
        map_obj: Folium map to add the layer to
        charts: Charts of one layer
        name: Layer control label
        draw_lines: Draw a line from each chart to the observations it summarises
        show: Whether layer is visible by default
    """
    if not charts:
        return

    group = folium.FeatureGroup(name=name, show=show)
    for chart in charts:
        lon, lat = chart.location
        dominant = max(chart.pie_data, key=lambda item: item["y"]["count"])
        folium.Marker(
            location=[lat, lon],
            popup=folium.Popup(_chart_popup(chart)),
            tooltip=f"{chart.waterbody_name} ({len(chart.observations)})",
            icon=folium.Icon(color="white", icon_color=fu_color(int(dominant["name"])), icon="tint"),
        ).add_to(group)

        if draw_lines:
            for item in chart.pie_data:
                for x, y in item["y"]["points"]:
                    folium.PolyLine([[lat, lon], [y, x]], color="red", weight=1).add_to(group)
    group.add_to(map_obj)


def finalize_map(map_obj: folium.Map, collapsed: bool = True) -> None:
    """
    Finalize the map by adding layer control.

    Args:
        map_obj: Folium map to finalize
        collapsed: Whether layer control should be collapsed by default
    """
    folium.LayerControl(collapsed=collapsed).add_to(map_obj)


def build_chart_map(
    observations: Sequence[Observation],
    layers: Dict[str, Sequence[Waterbody]],
    charts: Dict[str, List[WaterbodyChart]],
    draw_lines: bool = False
) -> folium.Map:
    """Assemble the full map: base, waterbody layers, observations and chart markers."""
    map_obj = create_base_map(observations)
    for idx, (layer_name, waterbodies) in enumerate(layers.items()):
        add_waterbody_layer(map_obj, waterbodies, layer_name, color=LAYER_COLORS[idx % len(LAYER_COLORS)])
    add_observation_layer(map_obj, observations)
    for layer_key, layer_charts in charts.items():
        add_chart_layer(map_obj, layer_charts, f"Charts: {layer_key}", draw_lines=draw_lines)
    finalize_map(map_obj)
    return map_obj
