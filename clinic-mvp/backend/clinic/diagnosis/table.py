"""
Static differential table keyed by primary body part.

Each list is ordered by base confidence and always holds 4 candidates.
"""

from .types import CPTCode, DiagnosisCandidate

OFFICE_VISIT_NEW = CPTCode('99203', 'Office Visit - New Patient')
THERAPEUTIC_EXERCISES = CPTCode('97110', 'Therapeutic exercises')


DIAGNOSIS_TABLE: dict[str, list[DiagnosisCandidate]] = {
    'Shoulder': [
        DiagnosisCandidate('Rotator Cuff Strain', 'S46.011A', 0.85, (
            CPTCode('99203', 'Office Visit - New Patient (30 min)'),
            CPTCode('73030', 'Radiologic exam, shoulder (X-ray)'),
            CPTCode('20610', 'Arthrocentesis/injection, major joint'),
            THERAPEUTIC_EXERCISES,
        )),
        DiagnosisCandidate('Subacromial Bursitis', 'M75.5', 0.72, (
            OFFICE_VISIT_NEW,
            CPTCode('73030', 'Shoulder X-ray'),
            CPTCode('20610', 'Shoulder injection'),
            CPTCode('97140', 'Manual therapy'),
        )),
        DiagnosisCandidate('Biceps Tendinitis', 'M75.20', 0.65, (
            OFFICE_VISIT_NEW,
            CPTCode('73030', 'Shoulder X-ray'),
            THERAPEUTIC_EXERCISES,
        )),
        DiagnosisCandidate('Glenohumeral Joint Instability', 'M25.311', 0.43, (
            OFFICE_VISIT_NEW,
            CPTCode('73030', 'Shoulder X-ray'),
            CPTCode('73221', 'MRI upper extremity'),
        )),
    ],
    'Lower Back': [
        DiagnosisCandidate('Lumbar Strain/Sprain', 'S39.012A', 0.88, (
            OFFICE_VISIT_NEW,
            CPTCode('72100', 'Lumbar spine X-ray (2-3 views)'),
            THERAPEUTIC_EXERCISES,
            CPTCode('98940', 'Chiropractic manipulation'),
        )),
        DiagnosisCandidate('Herniated Lumbar Disc', 'M51.26', 0.74, (
            OFFICE_VISIT_NEW,
            CPTCode('72148', 'MRI lumbar spine without contrast'),
            CPTCode('64483', 'Epidural steroid injection'),
            THERAPEUTIC_EXERCISES,
        )),
        DiagnosisCandidate('Lumbar Facet Joint Syndrome', 'M47.816', 0.61, (
            OFFICE_VISIT_NEW,
            CPTCode('72100', 'Lumbar spine X-ray'),
            CPTCode('64493', 'Facet joint injection lumbar'),
        )),
        DiagnosisCandidate('Sacroiliac Joint Dysfunction', 'M53.3', 0.52, (
            OFFICE_VISIT_NEW,
            CPTCode('72100', 'Lumbar spine X-ray'),
            CPTCode('27096', 'SI joint injection'),
        )),
    ],
    'Knee': [
        DiagnosisCandidate('Meniscal Tear', 'S83.241A', 0.81, (
            OFFICE_VISIT_NEW,
            CPTCode('73562', 'Knee X-ray (3 views)'),
            CPTCode('73721', 'MRI lower extremity'),
            CPTCode('29881', 'Arthroscopy with meniscectomy'),
        )),
        DiagnosisCandidate('Patellar Tendinitis', 'M76.50', 0.69, (
            OFFICE_VISIT_NEW,
            CPTCode('73562', 'Knee X-ray'),
            THERAPEUTIC_EXERCISES,
        )),
        DiagnosisCandidate('Anterior Cruciate Ligament Sprain', 'S83.511A', 0.58, (
            OFFICE_VISIT_NEW,
            CPTCode('73562', 'Knee X-ray'),
            CPTCode('73721', 'MRI lower extremity'),
            CPTCode('29888', 'ACL reconstruction'),
        )),
        DiagnosisCandidate('Patellofemoral Pain Syndrome', 'M22.2X1', 0.47, (
            OFFICE_VISIT_NEW,
            CPTCode('73562', 'Knee X-ray'),
            THERAPEUTIC_EXERCISES,
        )),
    ],
    'Wrist': [
        DiagnosisCandidate('Carpal Tunnel Syndrome', 'G56.00', 0.83, (
            OFFICE_VISIT_NEW,
            CPTCode('95860', 'Needle EMG study'),
            CPTCode('95900', 'Nerve conduction study'),
            CPTCode('64721', 'Carpal tunnel release'),
        )),
        DiagnosisCandidate('Wrist Sprain', 'S63.501A', 0.76, (
            OFFICE_VISIT_NEW,
            CPTCode('73100', 'Wrist X-ray (2 views)'),
            CPTCode('29125', 'Splint application, forearm'),
        )),
        DiagnosisCandidate("De Quervain's Tenosynovitis", 'M65.4', 0.64, (
            OFFICE_VISIT_NEW,
            CPTCode('20550', 'Tendon sheath injection'),
            THERAPEUTIC_EXERCISES,
        )),
        DiagnosisCandidate('Scaphoid Fracture', 'S62.001A', 0.51, (
            OFFICE_VISIT_NEW,
            CPTCode('73100', 'Wrist X-ray'),
            CPTCode('25628', 'Open treatment scaphoid fracture'),
        )),
    ],
    'Neck': [
        DiagnosisCandidate('Cervical Strain', 'S13.4XXA', 0.86, (
            OFFICE_VISIT_NEW,
            CPTCode('72040', 'Cervical spine X-ray (2-3 views)'),
            THERAPEUTIC_EXERCISES,
            CPTCode('98940', 'Chiropractic manipulation'),
        )),
        DiagnosisCandidate('Cervical Radiculopathy', 'M54.12', 0.71, (
            OFFICE_VISIT_NEW,
            CPTCode('72141', 'MRI cervical spine without contrast'),
            CPTCode('64479', 'Cervical epidural injection'),
        )),
        DiagnosisCandidate('Cervical Disc Herniation', 'M50.20', 0.62, (
            OFFICE_VISIT_NEW,
            CPTCode('72141', 'MRI cervical spine'),
            CPTCode('64479', 'Cervical epidural injection'),
            CPTCode('63081', 'Cervical laminectomy'),
        )),
        DiagnosisCandidate('Whiplash Injury', 'S13.4XXA', 0.49, (
            OFFICE_VISIT_NEW,
            CPTCode('72040', 'Cervical spine X-ray'),
            THERAPEUTIC_EXERCISES,
        )),
    ],
}


DEFAULT_DIAGNOSES: list[DiagnosisCandidate] = [
    DiagnosisCandidate('Musculoskeletal Strain', 'M62.838', 0.75, (
        OFFICE_VISIT_NEW,
        THERAPEUTIC_EXERCISES,
    )),
    DiagnosisCandidate('Soft Tissue Injury', 'M79.9', 0.68, (
        OFFICE_VISIT_NEW,
        THERAPEUTIC_EXERCISES,
    )),
    DiagnosisCandidate('Contusion', 'S80.01XA', 0.55, (
        OFFICE_VISIT_NEW,
        CPTCode('97035', 'Ultrasound therapy'),
    )),
    DiagnosisCandidate('Overuse Injury', 'M70.90', 0.42, (
        OFFICE_VISIT_NEW,
        THERAPEUTIC_EXERCISES,
    )),
]
