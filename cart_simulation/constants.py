from .enums import AgentStatus, PriorityTier

# ============================================================
# SIMULATION CLOCK
# ============================================================
SECONDS_PER_TICK = 0.1     # nominal sim-seconds per tick (before speed multiplier)
SPEED_MIN = 0.1
SPEED_MAX = 100.0
SPEED_STEPS = [0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 50.0, 100.0]

# ============================================================
# DISPATCH & PRIORITY
# ============================================================
TIER_WEIGHT = 1000                  # score spread between adjacent tiers
STARVATION_CAP = 500                # max starvation discount
STARVATION_THRESHOLD = 300.0        # sim-seconds before starvation kicks in
MIN_DISPATCH_BATTERY = 20.0         # % required to be considered for a job
MIN_REMAINING_BATTERY = 10.0        # % that must remain after both legs
LIKELY_LATE_BUFFER = 120.0          # deadline within now + buffer => likely late
ETA_START_OFFSET = 60.0
ETA_DELIVERY_OFFSET = 180.0

# ============================================================
# ENERGY & BATTERY
# ============================================================
ENERGY_PER_CELL_WH = 0.1            # estimated Wh per cell in route planning
CO2_PER_WH = 0.5                    # g CO2 per Wh (approximate grid average)
CRITICAL_BATTERY = 5.0              # forced diversion to a charger
LOW_BATTERY_SEEK = 20.0             # idle agents below this look for a charger
CHARGE_COMPLETE_BATTERY = 95.0      # leave the charger at this level
DEFAULT_CHARGE_RATE = 1.0           # % per sim-second

# ============================================================
# EXECUTION
# ============================================================
REPLAN_COOLDOWN = 5.0               # sim-seconds between forced replans
METRICS_PUSH_INTERVAL = 10          # ticks between metric pushes to observers
MAX_EVENTS = 1000

# ============================================================
# JOB DEFAULTS
# ============================================================
DEFAULT_PICKUP_SERVICE_TIME = 15.0
DEFAULT_DROPOFF_SERVICE_TIME = 20.0
TRIAGE_DEADLINE_OFFSETS = {1: 120.0, 2: 180.0}
TRIAGE_DEFAULT_DEADLINE_OFFSET = 300.0
SUPPLY_POINT = (20, 5)               # Central Supply on the demo floor

# ============================================================
# AGENT DEFAULTS
# ============================================================
AGENT_SPEED = 1.0                   # cells per second
AGENT_DRAIN_RATE = 0.2              # % battery per cell moved
AGENT_PAYLOAD_LIMIT = 50.0          # kg
AGENT_ACCESS_PROFILES = ("GENERAL",)

# ============================================================
# VIEWER
# ============================================================
CELL_SIZE = 20
PANEL_WIDTH = 300
FPS = 30

PANEL_BG        = (30, 30, 40)
PANEL_TEXT      = (200, 200, 210)
PANEL_HEADER    = (140, 160, 255)
PANEL_SEPARATOR = (60, 60, 80)
PANEL_GREEN     = (80, 220, 100)
PANEL_YELLOW    = (230, 200, 60)
PANEL_RED       = (230, 70, 70)

BG_COLOR        = (210, 215, 222)
OUTLINE_COLOR   = (175, 180, 188)
CELL_COLORS = {
    "walkable":   (235, 238, 242),
    "blocked":    (120, 125, 135),
    "quarantine": (230, 120, 120),
    "restricted": (250, 225, 150),
    "charger":    (120, 220, 140),
    "storage":    (170, 135, 75),
    "staging":    (175, 165, 225),
}
PRIORITY_COLORS = {
    PriorityTier.IMMEDIATE:   (239, 68, 68),
    PriorityTier.EMERGENCY:   (249, 115, 22),
    PriorityTier.URGENT:      (234, 179, 8),
    PriorityTier.SEMI_URGENT: (34, 197, 94),
    PriorityTier.NON_URGENT:  (59, 130, 246),
}
AGENT_STATUS_COLORS = {
    AgentStatus.IDLE:         (34, 197, 94),
    AgentStatus.MOVING:       (59, 130, 246),
    AgentStatus.PICKING_UP:   (139, 92, 246),
    AgentStatus.DROPPING_OFF: (139, 92, 246),
    AgentStatus.CHARGING:     (245, 158, 11),
    AgentStatus.WAITING:      (107, 114, 128),
    AgentStatus.FAILED:       (239, 68, 68),
}
ROUTE_COLOR = (0, 200, 0)
