"""peskas.dashboard

Paquete de utilidades del Dashboard de pesquerías.

Este paquete concentra la lógica de consulta y la capa de métricas derivadas
que consumen los endpoints HTTP. El objetivo es que los routers permanezcan
delgados (HTTP/serialización) y la lógica de datos viva aquí.

Módulos
-------
- ``queries``: lectura de colecciones del document store y filtros estándar.
- ``aggregations``: agrupaciones del lado servidor (performance, radar,
  resúmenes por distrito/región, taxa, artes de pesca, estadísticas mensuales).
- ``fish_distribution``: composición de la captura por categoría de pescado.
- ``fishers``: métricas por pescador (ranking, tendencias y resumen).
- ``reshape``: pivot de observaciones (formato largo) a filas anchas.
- ``derived``: promedio entre sitios, rollup anual, deltas de ventana reciente
  y ajuste de tendencia (OLS).
- ``colors``: registro de colores por sesión y paleta del heatmap.
- ``permissions``: visibilidad por rol (CIA / WBCIA / admin).
"""
