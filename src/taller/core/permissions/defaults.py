"""Well-known permission codes and the default catalog.

The codes used by the access-control endpoints themselves are exported as
constants. ``DEFAULT_CATALOG`` is what ``tallerctl seed`` upserts, along
with the roles that get each code out of the box.
"""

from typing import NamedTuple


# Codes guarding this service's own endpoints
ROLES_ADMIN = "roles.administrar"
PERMISSIONS_ASSIGN = "permisos.asignar"
PERMISSIONS_ADMIN = "permisos.administrar"

ROLE_ADMIN = "Administrador"
ROLE_MECHANIC = "Mecánico"
ROLE_RECEPTION = "Recepcionista"

DEFAULT_ROLES: dict[str, str] = {
    ROLE_ADMIN: "Acceso completo al sistema",
    ROLE_MECHANIC: "Ejecución de órdenes y uso de inventario",
    ROLE_RECEPTION: "Atención a clientes, cotizaciones y ventas",
}

DEFAULT_MODULES: dict[str, str] = {
    "inventario": "Inventario",
    "ventas": "Ventas",
    "clientes": "Clientes",
    "ordenes": "Órdenes de trabajo",
    "cotizaciones": "Cotizaciones",
    "facturacion": "Facturación",
    "reportes": "Reportes",
    "dashboard": "Dashboard",
    "seguridad": "Seguridad",
}


class CatalogEntry(NamedTuple):
    code: str
    name: str
    description: str
    module: str
    group: str | None
    roles: tuple[str, ...]


_ALL = (ROLE_ADMIN, ROLE_MECHANIC, ROLE_RECEPTION)

DEFAULT_CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        "inventario.ver",
        "Ver inventario",
        "Consulta stock y movimientos del inventario",
        "inventario",
        "gestion_inventario",
        _ALL,
    ),
    CatalogEntry(
        "inventario.movimientos",
        "Registrar movimientos de inventario",
        "Autoriza registrar salidas y ajustes en el inventario",
        "inventario",
        "gestion_inventario",
        (ROLE_ADMIN, ROLE_MECHANIC),
    ),
    CatalogEntry(
        "inventario.compras",
        "Registrar compras de inventario",
        "Permite registrar compras rápidas que actualizan el inventario",
        "inventario",
        "gestion_inventario",
        (ROLE_ADMIN, ROLE_RECEPTION),
    ),
    CatalogEntry(
        "inventario.alertas",
        "Ver alertas de stock",
        "Recibe alertas de stock mínimo",
        "inventario",
        "gestion_inventario",
        (ROLE_ADMIN,),
    ),
    CatalogEntry(
        "ventas.ver",
        "Ver ventas",
        "Consulta el historial de ventas",
        "ventas",
        "gestion_ventas",
        (ROLE_ADMIN, ROLE_RECEPTION),
    ),
    CatalogEntry(
        "ventas.conciliar",
        "Conciliar ventas",
        "Conciliación de pagos y cierres de caja",
        "ventas",
        "gestion_ventas",
        (ROLE_ADMIN,),
    ),
    CatalogEntry(
        "clientes.listar",
        "Listar clientes",
        "Consulta el registro de clientes",
        "clientes",
        None,
        _ALL,
    ),
    CatalogEntry(
        "clientes.editar",
        "Editar clientes",
        "Alta y edición de clientes y vehículos",
        "clientes",
        None,
        (ROLE_ADMIN, ROLE_RECEPTION),
    ),
    CatalogEntry(
        "ordenes.crear",
        "Crear órdenes",
        "Apertura de órdenes de trabajo",
        "ordenes",
        None,
        (ROLE_ADMIN, ROLE_RECEPTION),
    ),
    CatalogEntry(
        "cotizaciones.gestionar",
        "Gestionar cotizaciones",
        "Crear, enviar y convertir cotizaciones",
        "cotizaciones",
        None,
        (ROLE_ADMIN, ROLE_RECEPTION),
    ),
    CatalogEntry(
        "facturacion.ver",
        "Ver comprobantes",
        "Consulta de comprobantes electrónicos",
        "facturacion",
        None,
        (ROLE_ADMIN, ROLE_RECEPTION),
    ),
    CatalogEntry(
        "facturacion.emitir",
        "Emitir comprobantes",
        "Emisión de boletas y facturas",
        "facturacion",
        None,
        (ROLE_ADMIN,),
    ),
    CatalogEntry(
        "reportes.ver",
        "Ver reportes",
        "Consulta de reportes generados",
        "reportes",
        None,
        (ROLE_ADMIN,),
    ),
    CatalogEntry(
        "dashboard.ver",
        "Ver dashboard",
        "Indicadores generales del taller",
        "dashboard",
        None,
        (ROLE_ADMIN,),
    ),
    CatalogEntry(
        ROLES_ADMIN,
        "Administrar roles",
        "Crear, editar y deshabilitar roles y sus permisos",
        "seguridad",
        "control_acceso",
        (ROLE_ADMIN,),
    ),
    CatalogEntry(
        PERMISSIONS_ASSIGN,
        "Asignar permisos",
        "Gestionar permisos personalizados de usuarios",
        "seguridad",
        "control_acceso",
        (ROLE_ADMIN,),
    ),
    CatalogEntry(
        PERMISSIONS_ADMIN,
        "Administrar catálogo de permisos",
        "Crear y desactivar entradas del catálogo",
        "seguridad",
        "control_acceso",
        (ROLE_ADMIN,),
    ),
)
