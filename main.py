from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi import status
from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from models import Capability, Role, User
from manager import EventManager
from auth import users, get_current_user, create_access_token, hash_password, authenticate
from exceptions import SchedulingError, SchedulingConflict, status_code_for
from permissions import authorize, has_capability
from utils import parse_time
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
import os

load_dotenv()  # Load variables from .env file
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

# Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Engine
manager = EventManager(users)

# FastAPI App
@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info(f"Shutting down with {len(manager.schedule)} live events")

app = FastAPI(lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    body = {"detail": str(exc)}
    if isinstance(exc, SchedulingConflict):
        body["conflicts"] = [manager.project(event) for event in exc.conflicts]
    logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=status_code_for(exc), content=body)

# -------------------------------
# Schemas
# -------------------------------
class EventCreate(BaseModel):
    title: str
    room: str
    start_time: str
    duration: int = Field(60, gt=0, description="Length in minutes")
    capacity: int = Field(ge=0)
    hosts: List[str] = []

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Python Workshop",
                "room": "101",
                "start_time": "10:00",
                "duration": 60,
                "capacity": 50,
                "hosts": ["speaker_username"]
            }
        }

class EventReschedule(BaseModel):
    start_time: str
    duration: int = Field(gt=0)

class AttendeeRegister(BaseModel):
    user_id: Optional[str] = None  # defaults to the caller

class UserRegister(BaseModel):
    username: str
    name: str
    password: str
    role: Literal["attendee", "speaker", "organizer", "admin"]

class UserLogin(BaseModel):
    username: str
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"

class BanRequest(BaseModel):
    banned: bool = True

def resolve_hosts(usernames: List[str]) -> List[str]:
    """Map host usernames to ids; every host must be allowed to speak."""
    host_ids = []
    for username in usernames:
        host = users.get_by_username(username)
        if host is None or not has_capability(host, Capability.CAN_SPEAK_AT_TALK):
            raise HTTPException(status_code=400, detail=f"Invalid speaker: {username}")
        if host.id not in host_ids:
            host_ids.append(host.id)
    return host_ids

def authorize_attendance(current_user: User, target_id: str):
    if target_id == current_user.id:
        authorize(current_user, Capability.CAN_SIGN_UP_EVENT)
    else:
        authorize(current_user, Capability.CAN_SIGN_UP_USER)
        users.get(target_id)

# -------------------------------
# Auth Routes
# -------------------------------
@app.post("/register", response_model=dict, status_code=status.HTTP_201_CREATED, summary="Register a new user")
def register(user: UserRegister):
    """Register a new user with a specified role."""
    if users.get_by_username(user.username):
        raise HTTPException(status_code=400, detail="User already exists")
    try:
        created = users.add_user(Role(user.role), user.username, hash_password(user.password), user.name)
    except ValueError:
        raise HTTPException(status_code=400, detail="User already exists")
    logger.info(f"User {user.username} registered with role {user.role}")
    return {"message": "User registered", "data": {"id": created.id, "username": created.username}}

@app.post("/login", response_model=TokenResponse, summary="Login and receive an access token")
def login(user: UserLogin):
    """Authenticate user and return an access token."""
    db_user = authenticate(user.username, user.password)
    if not db_user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    logger.info(f"User {user.username} logged in")
    return {"access_token": create_access_token(db_user)}

@app.post("/users/{user_id}/ban", response_model=dict, summary="Ban or unban a user")
def ban_user(user_id: str, request: BanRequest, current_user: User = Depends(get_current_user)):
    authorize(current_user, Capability.CAN_BAN_USERS)
    target = users.set_banned(user_id, request.banned)
    logger.info(f"User {target.username} banned={request.banned} by {current_user.id}")
    return {"message": f"User {target.username} updated", "data": target.to_dict()}

# -------------------------------
# Event Routes
# -------------------------------
@app.get("/", response_model=dict, summary="API root endpoint")
def root():
    """Welcome message for the Event Scheduling API."""
    return {"message": "Welcome to Event Scheduling API", "data": {}}

@app.get("/events", response_model=dict, summary="List events")
def list_events(start: Optional[str] = None, end: Optional[str] = None,
                host: Optional[str] = None, title: Optional[str] = None):
    """Retrieve events, optionally filtered by time interval, host username or title."""
    if start or end:
        if not (start and end):
            raise HTTPException(status_code=400, detail="Both start and end are required")
        data = manager.retrieve_events_by_time_interval(parse_time(start), parse_time(end))
    elif host:
        host_user = users.get_by_username(host)
        data = manager.retrieve_events_by_host(host_user.id) if host_user else []
    elif title:
        data = manager.retrieve_events_by_title(title)
    else:
        data = manager.retrieve_all_events()
    return {"message": "Events retrieved", "data": data}

@app.get("/events/signup", response_model=dict, summary="Events the caller can sign up for")
def list_signup_able_events(current_user: User = Depends(get_current_user)):
    return {"message": "Events retrieved", "data": manager.retrieve_signup_able_events(current_user.id)}

@app.get("/events/mine", response_model=dict, summary="Events the caller is attending")
def list_my_events(current_user: User = Depends(get_current_user)):
    return {"message": "Events retrieved", "data": manager.retrieve_events_by_attendee(current_user.id)}

@app.post("/events", response_model=dict, status_code=status.HTTP_201_CREATED, summary="Schedule a new event")
def create_event(event: EventCreate, current_user: User = Depends(get_current_user)):
    """Schedule a new event (organizers and admins only)."""
    authorize(current_user, Capability.CAN_SCHEDULE)
    hosts = resolve_hosts(event.hosts)
    try:
        evt = manager.schedule_event(event.capacity, event.room, parse_time(event.start_time),
                                     event.title, hosts, event.duration)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Event {evt.id} created by {current_user.id}")
    return {"message": "Event created", "data": manager.project(evt)}

@app.put("/events/{event_id}/schedule", response_model=dict, summary="Reschedule an event")
def reschedule_event(event_id: str, event: EventReschedule, current_user: User = Depends(get_current_user)):
    """Move an event to a new window (organizers and admins only)."""
    authorize(current_user, Capability.CAN_SCHEDULE)
    new_start = parse_time(event.start_time)
    try:
        with manager.lock:
            evt = manager.reschedule_event(manager.index_of(event_id), new_start, event.duration)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": f"Event {event_id} rescheduled", "data": manager.project(evt)}

@app.delete("/events/{event_id}", response_model=dict, summary="Cancel an event")
def cancel_event(event_id: str, current_user: User = Depends(get_current_user)):
    """Cancel an event (organizers and admins only)."""
    authorize(current_user, Capability.CAN_SCHEDULE)
    with manager.lock:
        manager.cancel_event(manager.index_of(event_id))
    return {"message": f"Event {event_id} cancelled", "data": {}}

# -------------------------------
# Attendee Routes
# -------------------------------
@app.post("/events/{event_id}/attendees", response_model=dict, summary="Register an attendee for an event")
def register_attendee(event_id: str, attendee: AttendeeRegister, current_user: User = Depends(get_current_user)):
    """Sign the caller, or another user when permitted, up for an event."""
    target_id = attendee.user_id or current_user.id
    authorize_attendance(current_user, target_id)
    with manager.lock:
        evt = manager.register_attendee(target_id, manager.index_of(event_id))
    return {"message": f"{users.name_of(target_id)} registered for {evt.title}", "data": manager.project(evt)}

@app.delete("/events/{event_id}/attendees/{user_id}", response_model=dict, summary="Withdraw an attendee")
def remove_attendee(event_id: str, user_id: str, current_user: User = Depends(get_current_user)):
    authorize_attendance(current_user, user_id)
    with manager.lock:
        evt = manager.remove_attendee(user_id, manager.index_of(event_id))
    return {"message": f"{users.name_of(user_id)} removed from {evt.title}", "data": manager.project(evt)}

@app.get("/snapshot", response_model=dict, summary="Export schedule and users as plain data")
def snapshot(current_user: User = Depends(get_current_user)):
    authorize(current_user, Capability.CAN_VIEW_STATS)
    return {"message": "Snapshot retrieved", "data": {"events": manager.snapshot(), "users": users.snapshot()}}
