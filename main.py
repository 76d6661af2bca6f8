import logging
import os
import time
from typing import Literal, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field
from pymongo.errors import PyMongoError

import database
from auth import TOKEN_COOKIE, AccessGate, Identity, authenticate, cookie_options, issue_token
from database import serialize
from errors import Forbidden, MarketError
from inventory import InventoryLedger, PlantCatalog
from notifications import Notifier, send_email
from orders import OrderEngine
from payments import PaymentReconciliation
from reports import ReportingAggregator
from schemas import Customer, OrderStatus, Plant, Role
from users import UserDirectory

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("plantnet")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:5174").split(",") if o.strip()]

app = FastAPI(title="PlantNet API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - started) * 1000
    logger.info("%s %s %d %.1fms", request.method, request.url.path, response.status_code, elapsed)
    return response


@app.exception_handler(MarketError)
def market_error_handler(request: Request, exc: MarketError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
def ensure_indexes():
    if database.db is None:
        logger.warning("DATABASE_URL not set, running without storage")
        return
    try:
        database.db["user"].create_index("email", unique=True)
    except PyMongoError as e:
        logger.error("Could not create indexes: %s", e)


# --- Dependencies ---

def get_database():
    if database.db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return database.db


def get_users(db=Depends(get_database)) -> UserDirectory:
    return UserDirectory(db["user"])


def get_gate(users: UserDirectory = Depends(get_users)) -> AccessGate:
    return AccessGate(users)


def get_ledger(db=Depends(get_database)) -> InventoryLedger:
    return InventoryLedger(db["plant"])


def get_catalog(db=Depends(get_database)) -> PlantCatalog:
    return PlantCatalog(db["plant"])


def get_mailer():
    return send_email


def get_notifier(background_tasks: BackgroundTasks, mailer=Depends(get_mailer)) -> Notifier:
    return Notifier(mailer=mailer, schedule=background_tasks.add_task)


def get_engine(db=Depends(get_database), ledger: InventoryLedger = Depends(get_ledger),
               notifier: Notifier = Depends(get_notifier)) -> OrderEngine:
    return OrderEngine(db["order"], ledger, notifier)


def get_payments(ledger: InventoryLedger = Depends(get_ledger)) -> PaymentReconciliation:
    return PaymentReconciliation(ledger)


def get_reports(db=Depends(get_database)) -> ReportingAggregator:
    return ReportingAggregator(db["user"], db["plant"], db["order"])


def current_identity(request: Request) -> Identity:
    # resolved before any storage dependency so a missing cookie is always a 401
    return authenticate(request.cookies.get(TOKEN_COOKIE))


def require_role(role: str):
    def dependency(identity: Identity = Depends(current_identity), gate: AccessGate = Depends(get_gate)) -> Identity:
        gate.authorize(identity, role)
        return identity
    return dependency


seller_only = require_role("Seller")
admin_only = require_role("Admin")


# --- Request bodies ---

class TokenRequest(BaseModel):
    email: EmailStr


class UserCreate(BaseModel):
    name: Optional[str] = None
    image: Optional[str] = None


class RoleUpdate(BaseModel):
    role: Role


class OrderCreate(BaseModel):
    plant_id: str
    quantity: int = Field(..., ge=1)
    customer: Customer
    seller_email: Optional[EmailStr] = None
    address: Optional[str] = None
    # accepted for compatibility with older clients, never used for pricing
    price: Optional[float] = None


class QuantityUpdate(BaseModel):
    quantity_to_update: int = Field(..., ge=1)
    status: Literal["increase", "decrease"] = "decrease"


class StatusUpdate(BaseModel):
    status: OrderStatus


class PaymentIntentRequest(BaseModel):
    plant_id: str
    total_quantity: int = Field(..., ge=1)


@app.get("/")
def read_root():
    return {"message": "PlantNet API Running"}


# --- Session ---

@app.post("/jwt")
def create_session(req: TokenRequest, response: Response):
    response.set_cookie(TOKEN_COOKIE, issue_token(req.email), **cookie_options())
    return {"success": True}


@app.get("/logout")
def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE, **cookie_options())
    return {"success": True}


# --- Users ---

@app.post("/users/{email}")
def save_user(email: EmailStr, payload: UserCreate, users: UserDirectory = Depends(get_users)):
    return serialize(users.create(email, name=payload.name, image=payload.image))


@app.get("/users/role/{email}")
def get_user_role(email: EmailStr, users: UserDirectory = Depends(get_users)):
    return {"role": users.role_of(email)}


@app.get("/all-users/{email}")
def list_users(email: EmailStr, identity: Identity = Depends(admin_only), users: UserDirectory = Depends(get_users)):
    return serialize(users.list_except(email))


@app.patch("/users/{email}")
def request_seller(email: EmailStr, identity: Identity = Depends(current_identity),
                   users: UserDirectory = Depends(get_users)):
    return users.request_seller(identity.email, email)


@app.patch("/user/role/{email}")
def update_user_role(email: EmailStr, payload: RoleUpdate, identity: Identity = Depends(admin_only),
                     users: UserDirectory = Depends(get_users)):
    return users.set_role(email, payload.role)


# --- Plants ---

@app.post("/plants")
def create_plant(payload: Plant, identity: Identity = Depends(seller_only),
                 users: UserDirectory = Depends(get_users), catalog: PlantCatalog = Depends(get_catalog)):
    seller = users.get(identity.email)
    return {"insertedId": catalog.add(seller, payload)}


@app.get("/seller/plants")
def list_seller_plants(identity: Identity = Depends(seller_only), catalog: PlantCatalog = Depends(get_catalog)):
    return serialize(catalog.for_seller(identity.email))


@app.delete("/delete/plant/seller/{plant_id}")
def delete_plant(plant_id: str, identity: Identity = Depends(seller_only),
                 catalog: PlantCatalog = Depends(get_catalog)):
    return catalog.remove(identity.email, plant_id)


@app.get("/plants")
def list_plants(catalog: PlantCatalog = Depends(get_catalog)):
    return serialize(catalog.list_all())


@app.get("/plant/{plant_id}")
def get_plant(plant_id: str, catalog: PlantCatalog = Depends(get_catalog)):
    return serialize(catalog.get(plant_id))


@app.patch("/plants/quantity/{plant_id}")
def update_plant_quantity(plant_id: str, payload: QuantityUpdate, identity: Identity = Depends(current_identity),
                          engine: OrderEngine = Depends(get_engine)):
    return engine.adjust_quantity(plant_id, payload.quantity_to_update, payload.status)


# --- Orders ---

@app.post("/order")
def place_order(payload: OrderCreate, identity: Identity = Depends(current_identity),
                engine: OrderEngine = Depends(get_engine)):
    return engine.place_order(
        identity,
        payload.plant_id,
        payload.quantity,
        payload.customer,
        seller_email=payload.seller_email,
        address=payload.address,
    )


@app.get("/orders")
def list_customer_orders(email: Optional[str] = None, identity: Identity = Depends(current_identity),
                         reports: ReportingAggregator = Depends(get_reports)):
    if email is not None and email != identity.email:
        raise Forbidden("You can only view your own orders")
    return serialize(reports.orders_for_customer(identity.email))


@app.get("/orders/seller")
def list_seller_orders(identity: Identity = Depends(seller_only), reports: ReportingAggregator = Depends(get_reports)):
    return serialize(reports.orders_for_seller(identity.email))


@app.patch("/order/status/{order_id}")
def update_order_status(order_id: str, payload: StatusUpdate, identity: Identity = Depends(seller_only),
                        engine: OrderEngine = Depends(get_engine)):
    return engine.update_status(identity, order_id, payload.status)


@app.delete("/orders/{order_id}")
def cancel_order(order_id: str, identity: Identity = Depends(current_identity),
                 engine: OrderEngine = Depends(get_engine)):
    return engine.cancel_order(identity, order_id)


# --- Admin & payments ---

@app.get("/admin-stat")
def admin_stat(identity: Identity = Depends(admin_only), reports: ReportingAggregator = Depends(get_reports)):
    return reports.admin_summary()


@app.post("/create-payment-intent")
def create_payment_intent(payload: PaymentIntentRequest, identity: Identity = Depends(current_identity),
                          payments: PaymentReconciliation = Depends(get_payments)):
    return payments.create_intent(payload.plant_id, payload.total_quantity)


@app.get("/test")
def test_database():
    resp = {"backend": "running", "database": "not configured"}
    if database.db is None:
        return resp
    try:
        resp["collections"] = database.db.list_collection_names()
        resp["database"] = "connected"
    except PyMongoError as e:
        resp["error"] = str(e)
    return resp


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 9000))
    uvicorn.run(app, host="0.0.0.0", port=port)
