"""
DDL for a tenant's private schema.

Statements use unqualified table names and run with the connection's
search_path pointed at the tenant schema. Every statement is idempotent
(``IF NOT EXISTS``) so provisioning can be re-run safely. Foreign keys only
point at tables of the same schema.

Clinical score ranges are enforced here, not in application code: each
Barthel item is restricted to its valid point set and the total is a
generated column.
"""

# Valid points per Barthel item
BARTHEL_ITEM_POINTS = {
    "feeding": (0, 5, 10),
    "bathing": (0, 5),
    "grooming": (0, 5),
    "dressing": (0, 5, 10),
    "bowels": (0, 5, 10),
    "bladder": (0, 5, 10),
    "toilet_use": (0, 5, 10),
    "transfers": (0, 5, 10, 15),
    "mobility": (0, 5, 10, 15),
    "stairs": (0, 5, 10),
}

MRC_MAX_TOTAL = 60


def _barthel_item_columns() -> str:
    columns = []
    for item, points in BARTHEL_ITEM_POINTS.items():
        allowed = ", ".join(str(p) for p in points)
        columns.append(f"{item} INTEGER CONSTRAINT chk_barthel_{item} CHECK ({item} IN ({allowed}))")
    return ",\n        ".join(columns)


def _barthel_total_expression() -> str:
    return " + ".join(f"COALESCE({item}, 0)" for item in BARTHEL_ITEM_POINTS)


CLIENTS = """
    CREATE TABLE IF NOT EXISTS clients (
        id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
        name TEXT NOT NULL,
        cnpj TEXT UNIQUE,
        contact_email TEXT NOT NULL,
        contact_phone TEXT,
        subscription_plan TEXT DEFAULT 'enterprise',
        max_hospitals INTEGER DEFAULT 5,
        max_users INTEGER DEFAULT 100,
        active BOOLEAN DEFAULT true,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    )
"""

HOSPITALS = """
    CREATE TABLE IF NOT EXISTS hospitals (
        id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
        client_id TEXT REFERENCES clients(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        code TEXT NOT NULL,
        address JSONB,
        contact_info JSONB,
        active BOOLEAN DEFAULT true,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW(),
        UNIQUE (code, client_id)
    )
"""

SERVICES = """
    CREATE TABLE IF NOT EXISTS services (
        id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
        hospital_id TEXT REFERENCES hospitals(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        code TEXT NOT NULL,
        description TEXT,
        color TEXT DEFAULT '#10B981',
        icon TEXT DEFAULT 'stethoscope',
        active BOOLEAN DEFAULT true,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW(),
        UNIQUE (code, hospital_id)
    )
"""

# global_user_id holds public.global_users.id; no cross-schema foreign key
USERS = """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
        global_user_id TEXT UNIQUE,
        hospital_id TEXT REFERENCES hospitals(id),
        service_id TEXT REFERENCES services(id),
        name TEXT NOT NULL,
        email TEXT UNIQUE NOT NULL,
        specialty TEXT,
        role TEXT DEFAULT 'collaborator',
        active BOOLEAN DEFAULT true,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    )
"""

PATIENTS = """
    CREATE TABLE IF NOT EXISTS patients (
        id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
        hospital_id TEXT REFERENCES hospitals(id),
        service_id TEXT REFERENCES services(id),
        user_id TEXT REFERENCES users(id),
        name TEXT NOT NULL,
        birth_date DATE,
        phone TEXT,
        email TEXT,
        address JSONB,
        medical_record TEXT,
        admission_date TIMESTAMPTZ,
        discharge_date TIMESTAMPTZ,
        is_active BOOLEAN DEFAULT true,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    )
"""

INDICATORS = """
    CREATE TABLE IF NOT EXISTS indicators (
        id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
        hospital_id TEXT REFERENCES hospitals(id),
        service_id TEXT REFERENCES services(id),
        user_id TEXT REFERENCES users(id),
        patient_id TEXT REFERENCES patients(id),
        name TEXT NOT NULL,
        value JSONB NOT NULL,
        unit TEXT,
        date TIMESTAMPTZ NOT NULL,
        notes TEXT,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    )
"""

BARTHEL_SCALES = f"""
    CREATE TABLE IF NOT EXISTS barthel_scales (
        id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
        hospital_id TEXT REFERENCES hospitals(id),
        service_id TEXT REFERENCES services(id),
        user_id TEXT REFERENCES users(id),
        patient_id TEXT REFERENCES patients(id),
        evaluation_date TIMESTAMPTZ NOT NULL,
        {_barthel_item_columns()},
        total_score INTEGER GENERATED ALWAYS AS ({_barthel_total_expression()}) STORED,
        notes TEXT,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    )
"""

MRC_SCALES = f"""
    CREATE TABLE IF NOT EXISTS mrc_scales (
        id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
        hospital_id TEXT REFERENCES hospitals(id),
        service_id TEXT REFERENCES services(id),
        user_id TEXT REFERENCES users(id),
        patient_id TEXT REFERENCES patients(id),
        evaluation_date TIMESTAMPTZ NOT NULL,
        muscle_groups JSONB NOT NULL,
        total_score NUMERIC(5, 2) CONSTRAINT chk_mrc_total CHECK (total_score >= 0 AND total_score <= {MRC_MAX_TOTAL}),
        notes TEXT,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    )
"""

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_hospitals_client_id ON hospitals(client_id)",
    "CREATE INDEX IF NOT EXISTS idx_services_hospital_id ON services(hospital_id)",
    "CREATE INDEX IF NOT EXISTS idx_users_hospital_id ON users(hospital_id)",
    "CREATE INDEX IF NOT EXISTS idx_users_service_id ON users(service_id)",
    "CREATE INDEX IF NOT EXISTS idx_patients_hospital_id ON patients(hospital_id)",
    "CREATE INDEX IF NOT EXISTS idx_patients_service_id ON patients(service_id)",
    "CREATE INDEX IF NOT EXISTS idx_indicators_patient_id ON indicators(patient_id)",
    "CREATE INDEX IF NOT EXISTS idx_indicators_date ON indicators(date)",
    "CREATE INDEX IF NOT EXISTS idx_barthel_scales_patient_id ON barthel_scales(patient_id)",
    "CREATE INDEX IF NOT EXISTS idx_barthel_scales_evaluation_date ON barthel_scales(evaluation_date)",
    "CREATE INDEX IF NOT EXISTS idx_mrc_scales_patient_id ON mrc_scales(patient_id)",
    "CREATE INDEX IF NOT EXISTS idx_mrc_scales_evaluation_date ON mrc_scales(evaluation_date)",
)

# Creation order matters: referenced tables first
TENANT_TABLES = {
    "clients": CLIENTS,
    "hospitals": HOSPITALS,
    "services": SERVICES,
    "users": USERS,
    "patients": PATIENTS,
    "indicators": INDICATORS,
    "barthel_scales": BARTHEL_SCALES,
    "mrc_scales": MRC_SCALES,
}

TENANT_DDL = (*TENANT_TABLES.values(), *INDEXES)
